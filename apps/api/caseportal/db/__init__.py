"""Database models, enums and session setup."""
