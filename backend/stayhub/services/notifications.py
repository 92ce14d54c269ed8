"""Templated account emails (simulated send: rendered and logged)."""

import logging

from stayhub.config import settings

logger = logging.getLogger(__name__)

TEMPLATES = {
    "password_reset": {
        "subject": "Reset your {app_name} password",
        "body": (
            "Hi {name},\n\n"
            "We received a request to reset the password for your {app_name} account.\n"
            "Use the link below within {expires_minutes} minutes to choose a new one:\n\n"
            "{reset_url}\n\n"
            "If you did not ask for this, you can ignore this email.\n\n"
            "The {app_name} team"
        ),
    },
    "welcome": {
        "subject": "Welcome to {app_name}!",
        "body": (
            "Hi {name},\n\n"
            "Your {app_name} account is ready. Start exploring stays at {frontend_url}.\n\n"
            "The {app_name} team"
        ),
    },
}


def render(template: str, **variables: str) -> tuple[str, str]:
    """Return ``(subject, body)`` for a template.

    Raises:
        KeyError: Unknown template or missing variable.
    """
    context = {"app_name": settings.app_name, "frontend_url": settings.frontend_url, **variables}
    tmpl = TEMPLATES[template]
    return tmpl["subject"].format(**context), tmpl["body"].format(**context)


def send_email(template: str, recipient: str, **variables: str) -> dict:
    """Render a template and log it in place of a real mail transport."""
    subject, body = render(template, **variables)
    logger.info("Email [%s] from %s to %s: %s", template, settings.mail_from, recipient, subject)
    return {"status": "simulated", "recipient": recipient, "subject": subject, "body": body}
