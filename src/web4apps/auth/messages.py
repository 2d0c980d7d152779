"""Signed-message literals.

Clients must sign these exact byte sequences; any change breaks every wallet
integration.
"""

REGISTRATION_MESSAGE = "Web4 Apps Registration"
DISCONNECT_GITHUB_MESSAGE = "Disconnect GitHub account"


def create_template_message(title: str) -> str:
    return f"Create template: {title}"


def delete_template_message(template_id: int) -> str:
    return f"Delete template #{template_id}"


def create_app_message(name: str) -> str:
    return f"Create app: {name}"


def delete_app_message(app_id: int) -> str:
    return f"Delete application #{app_id}"
