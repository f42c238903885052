"""Case lifecycle email notifications.

Each function renders one template and hands it to email_service.send_email.
They are scheduled as background tasks after the triggering change commits,
so they take plain values (no ORM objects) and never raise.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from caseportal.core.config import settings
from caseportal.core.i18n import translate
from caseportal.services import email_service

logger = logging.getLogger(__name__)


_LAYOUT = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: {{accent}}; padding: 30px; border-radius: 12px 12px 0 0; text-align: center;">
    <h1 style="color: white; margin: 0; font-size: 24px;">{{heading}}</h1>
  </div>
  <div style="background: #f8fafc; padding: 30px; border: 1px solid #e2e8f0; border-top: none; border-radius: 0 0 12px 12px;">
%s
    <div style="text-align: center; margin: 30px 0;">
      <a href="{{link}}" style="display: inline-block; background: {{accent}}; color: white; text-decoration: none; padding: 14px 28px; border-radius: 8px; font-weight: 600;">{{link_label}}</a>
    </div>
    <p style="color: #64748b; font-size: 14px;">If the button above doesn't work, copy and paste this link into your browser:</p>
    <p style="font-size: 14px; word-break: break-all;">{{link}}</p>
  </div>
  <div style="text-align: center; padding: 20px; color: #94a3b8; font-size: 12px;">
    <p style="margin: 0;">&copy; {{year}} {{brand}}. All rights reserved.</p>
    <p style="margin: 5px 0 0 0;">This is an automated message. Please do not reply to this email.</p>
  </div>
</body>
</html>
"""

_REPORT_READY_BODY = """
    <p style="margin-top: 0;">Dear {{patient_name}},</p>
    <p>Good news! A new medical report has been prepared for your case.</p>
    <table style="width: 100%; border-collapse: collapse; background: white; border: 1px solid #e2e8f0;">
      <tr><td style="padding: 8px; color: #64748b;">Case Number:</td><td style="padding: 8px; font-weight: 600;">{{case_number}}</td></tr>
      <tr><td style="padding: 8px; color: #64748b;">Report Type:</td><td style="padding: 8px; font-weight: 600;">{{report_label}}</td></tr>
    </table>
    <p>Our medical team has reviewed your case and prepared detailed findings and recommendations for you.</p>
    <p style="color: #64748b; font-size: 13px;"><strong>Important:</strong> This report is provided for informational purposes only. Please discuss all findings and recommendations with your primary healthcare provider.</p>
"""

_CASE_COMPLETED_BODY = """
    <p style="margin-top: 0;">Dear {{patient_name}},</p>
    <p>Great news! The medical review of your case has been completed.</p>
    <table style="width: 100%; border-collapse: collapse; background: white; border: 1px solid #e2e8f0;">
      <tr><td style="padding: 8px; color: #64748b;">Case Number:</td><td style="padding: 8px; font-weight: 600;">{{case_number}}</td></tr>
      <tr><td style="padding: 8px; color: #64748b;">Status:</td><td style="padding: 8px; font-weight: 600;">Completed</td></tr>
    </table>
    <p>All reports and recommendations for your case are now available in your patient portal.</p>
    <p style="color: #64748b; font-size: 13px;"><strong>Next Steps:</strong> Schedule a follow-up appointment with your primary healthcare provider to discuss the findings.</p>
"""

_CASE_SUBMITTED_PATIENT_BODY = """
    <p style="margin-top: 0;">Dear {{patient_name}},</p>
    <p>Thank you for submitting your case. Our medical team has received it and will begin the review process shortly.</p>
    <table style="width: 100%; border-collapse: collapse; background: white; border: 1px solid #e2e8f0;">
      <tr><td style="padding: 8px; color: #64748b;">Case Number:</td><td style="padding: 8px; font-weight: 600;">{{case_number}}</td></tr>
      <tr><td style="padding: 8px; color: #64748b;">Case Type:</td><td style="padding: 8px; font-weight: 600;">{{case_type_label}}</td></tr>
      <tr><td style="padding: 8px; color: #64748b;">Status:</td><td style="padding: 8px; font-weight: 600;">Submitted</td></tr>
    </table>
    <h3 style="color: #334155;">What Happens Next?</h3>
    <ol style="color: #64748b;">
      <li>Our team will review your submitted information</li>
      <li>A specialist will be assigned to your case</li>
      <li>You'll receive an email when your report is ready</li>
    </ol>
"""

_CASE_SUBMITTED_TEAM_BODY = """
    <p style="margin-top: 0;">A new case has been submitted and is awaiting review.</p>
    <table style="width: 100%; border-collapse: collapse; background: white; border: 1px solid #e2e8f0;">
      <tr><td style="padding: 8px; color: #64748b;">Case Number:</td><td style="padding: 8px; font-weight: 600;">{{case_number}}</td></tr>
      <tr><td style="padding: 8px; color: #64748b;">Patient Name:</td><td style="padding: 8px; font-weight: 600;">{{patient_name}}</td></tr>
      <tr><td style="padding: 8px; color: #64748b;">Patient Email:</td><td style="padding: 8px;">{{patient_email}}</td></tr>
      <tr><td style="padding: 8px; color: #64748b;">Case Type:</td><td style="padding: 8px;">{{case_type_label}}</td></tr>
      <tr><td style="padding: 8px; color: #64748b;">Primary Diagnosis:</td><td style="padding: 8px; font-weight: 600;">{{primary_diagnosis}}</td></tr>
    </table>
"""

_NEW_MESSAGE_BODY = """
    <p style="margin-top: 0;">Hello {{recipient_name}},</p>
    <p>{{sender_name}} sent you a new message about case <strong>{{case_number}}</strong>.</p>
    <p>For your privacy the message itself is only shown in the portal.</p>
"""


def _case_link(path: str, case_id: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/{path}/{case_id}"


def _base_variables(**variables: Any) -> dict[str, Any]:
    return {
        "brand": settings.FROM_NAME,
        "year": datetime.now(timezone.utc).year,
        **variables,
    }


async def _send(to_email: str, subject: str, body: str, variables: dict[str, Any]) -> dict[str, Any]:
    rendered_subject, rendered_html = email_service.render_template(
        subject, _LAYOUT % body, variables
    )
    try:
        result = await email_service.send_email(
            to_email=to_email, subject=rendered_subject, html_content=rendered_html
        )
    except Exception:
        # Background task: a failed notification must not surface anywhere else
        logger.exception("Notification send crashed")
        return {"success": False, "error": "Failed to send email"}
    if not result.get("success"):
        logger.warning("Notification not sent: %s", result.get("error"))
    return result


async def send_report_ready_notification(
    *,
    patient_email: str,
    patient_name: str | None,
    case_number: str,
    case_id: str,
    report_type: str,
) -> dict[str, Any]:
    variables = _base_variables(
        heading="Your Medical Report is Ready",
        accent="#0ea5e9",
        patient_name=patient_name or "Patient",
        case_number=case_number,
        report_label=translate("report_type", report_type, "en"),
        link=_case_link("portal/cases", case_id),
        link_label="View Your Report",
    )
    return await _send(
        patient_email,
        "Your Medical Report is Ready - Case {{case_number}}",
        _REPORT_READY_BODY,
        variables,
    )


async def send_case_completed_notification(
    *,
    patient_email: str,
    patient_name: str | None,
    case_number: str,
    case_id: str,
) -> dict[str, Any]:
    variables = _base_variables(
        heading="Your Case Review is Complete",
        accent="#10b981",
        patient_name=patient_name or "Patient",
        case_number=case_number,
        link=_case_link("portal/cases", case_id),
        link_label="View Case Results",
    )
    return await _send(
        patient_email,
        "Your Case Review is Complete - Case {{case_number}}",
        _CASE_COMPLETED_BODY,
        variables,
    )


async def send_case_submitted_patient_notification(
    *,
    patient_email: str,
    patient_name: str | None,
    case_number: str,
    case_id: str,
    case_type: str,
) -> dict[str, Any]:
    variables = _base_variables(
        heading="Case Submitted Successfully",
        accent="#8b5cf6",
        patient_name=patient_name or "Patient",
        case_number=case_number,
        case_type_label=translate("case_type", case_type, "en"),
        link=_case_link("portal/cases", case_id),
        link_label="View Your Case",
    )
    return await _send(
        patient_email,
        "Case Submitted - {{case_number}}",
        _CASE_SUBMITTED_PATIENT_BODY,
        variables,
    )


async def send_case_submitted_team_notification(
    *,
    patient_name: str | None,
    patient_email: str,
    case_number: str,
    case_id: str,
    case_type: str,
    primary_diagnosis: str | None,
) -> dict[str, Any]:
    variables = _base_variables(
        heading="New Case Submitted",
        accent="#f59e0b",
        patient_name=patient_name or "Not provided",
        patient_email=patient_email,
        case_number=case_number,
        case_type_label=translate("case_type", case_type, "en"),
        primary_diagnosis=primary_diagnosis or "Not specified",
        link=_case_link("clinician/cases", case_id),
        link_label="Review Case",
    )
    return await _send(
        settings.NOTIFICATION_EMAIL,
        "[Action Required] New Case Submitted - {{case_number}}",
        _CASE_SUBMITTED_TEAM_BODY,
        variables,
    )


async def send_new_message_notification(
    *,
    recipient_email: str,
    recipient_name: str | None,
    sender_name: str,
    case_number: str,
    case_id: str,
    recipient_is_patient: bool,
) -> dict[str, Any]:
    """Tell the other party a message is waiting. Content is not included (PHI)."""
    path = "portal/cases" if recipient_is_patient else "clinician/cases"
    variables = _base_variables(
        heading="You Have a New Message",
        accent="#6366f1",
        recipient_name=recipient_name or "there",
        sender_name=sender_name,
        case_number=case_number,
        link=f"{_case_link(path, case_id)}/messages",
        link_label="Open Conversation",
    )
    return await _send(
        recipient_email,
        "New message on case {{case_number}}",
        _NEW_MESSAGE_BODY,
        variables,
    )
