"""Authentication helpers for story-harness.

Tokens are opaque strings handed out by the story service login endpoint.
They are passed through untouched and never logged or printed.
"""


def auth_headers(token: str | None) -> dict[str, str]:
    """Build Authorization header dict.

    Args:
        token: Bearer token string

    Returns:
        Dict with Authorization header, or empty dict if no token
    """
    if token:
        return {"Authorization": f"Bearer {token}"}
    return {}


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Mask a secret for display, keeping only a short prefix."""
    if not value:
        return "(not set)"
    if len(value) <= visible:
        return "*" * len(value)
    return value[:visible] + "*" * 8
