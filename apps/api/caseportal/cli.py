"""CLI tools for portal administration."""

import click

from caseportal.db.session import SessionLocal
from caseportal.schemas.user import MAX_PASSWORD_BYTES, MIN_PASSWORD_LENGTH
from caseportal.services import admin_service, user_service
from caseportal.services.admin_service import ApprovalError


@click.group()
def cli():
    """Case portal CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="Admin email address")
@click.option("--name", default=None, help="Display name")
@click.password_option("--password", help="Admin password")
def create_admin(email: str, name: str | None, password: str):
    """
    Create the first administrator (or promote an existing account).

    Admins cannot register through the API; this is the bootstrap path.

    Example:
        caseportal create-admin --email "admin@example.com" --name "Site Admin"
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        click.echo(f"❌ Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        click.echo(f"❌ Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return

    db = SessionLocal()
    try:
        user = user_service.create_admin(db, email, password, name)
        click.echo(f"✓ Admin ready: {user.email}")
        click.echo(f"  ID: {user.id}")
    except Exception as e:
        db.rollback()
        raise click.ClickException(str(e))
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Email of the pending clinician")
def approve_clinician(email: str):
    """
    Approve a pending clinician without an admin session.

    Example:
        caseportal approve-clinician --email "dr.smith@example.com"
    """
    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            return
        clinician = admin_service.approve_clinician(db, user.id, admin=None)
        click.echo(f"✓ Approved clinician {clinician.email}")
    except ApprovalError as e:
        db.rollback()
        click.echo(f"❌ {e.detail}")
    except Exception as e:
        db.rollback()
        raise click.ClickException(str(e))
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        caseportal revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        user_service.revoke_sessions(db, user)
        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    except Exception as e:
        db.rollback()
        raise click.ClickException(str(e))
    finally:
        db.close()


@cli.command()
def list_pending():
    """List clinicians waiting for approval."""
    db = SessionLocal()
    try:
        pending = admin_service.list_pending_clinicians(db)
        if not pending:
            click.echo("No clinicians pending approval")
            return
        for user in pending:
            click.echo(f"{user.email}\t{user.specialty or '-'}\t{user.created_at:%Y-%m-%d}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
