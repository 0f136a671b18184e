"""
PII-safe logging utilities.

Provides minimal sanitization helpers to prevent sensitive data
leakage in logs while keeping them useful for debugging.
"""


def sanitize_shop(shop: str | None) -> str:
    """
    Sanitize a shop domain for logs.

    Rules:
    - None / empty → "N/A"
    - "<name>.myshopify.com" → first 3 chars of the name, rest masked
    - Other domains → first 3 + last 4 chars, middle masked
    """
    if not shop:
        return "N/A"

    shop = shop.strip().lower()
    name, _, suffix = shop.partition(".myshopify.com")
    if _ and name:
        return f"{name[:3]}***.myshopify.com"
    if len(shop) < 8:
        return "***"
    return f"{shop[:3]}***{shop[-4:]}"


def sanitize_email(email: str | None) -> str:
    """
    Sanitize an e-mail address for logs.

    Rules:
    - None / no "@" → fully masked
    - Otherwise → first char of the local part, domain kept
    """
    if not email or "@" not in email:
        return "***"

    local, _, domain = email.strip().partition("@")
    return f"{local[:1]}***@{domain}"


def sanitize_token(token: str | None) -> str:
    """
    Sanitize an access token for logs.

    Rules:
    - None / shorter than 10 chars → fully masked
    - Otherwise → last 4 chars only
    """
    if not token or len(token) < 10:
        return "***"

    return f"***{token[-4:]}"
