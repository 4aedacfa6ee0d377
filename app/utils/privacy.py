"""Masking helpers for personal data that ends up in logs."""

from typing import Any

MASK = "****"


def mask_email(email: str | None) -> str | None:
    """Keep the first two characters and the domain."""
    if not email or "@" not in email:
        return email
    local, domain = email.split("@", 1)
    return f"{local[:2]}{MASK}@{domain}"


def mask_phone(phone: str | None) -> str | None:
    """Keep the first three and last two digits."""
    if not phone:
        return phone
    return f"{phone[:3]}{MASK}{phone[-2:]}"


def mask_name(name: str | None) -> str | None:
    if not name:
        return name
    return f"{name[0]}{MASK}"


def anonymize_personal_data(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a user record with identifying fields masked.

    Args:
        data: Mapping with any of email, phone, first_name, last_name,
            date_of_birth, nhs_number

    Returns:
        New mapping safe to write to logs
    """
    masked = dict(data)
    if "email" in masked:
        masked["email"] = mask_email(masked["email"])
    if "phone" in masked:
        masked["phone"] = mask_phone(masked["phone"])
    for key in ("first_name", "last_name"):
        if key in masked:
            masked[key] = mask_name(masked[key])
    for key in ("date_of_birth", "nhs_number"):
        if masked.get(key):
            masked[key] = MASK
    return masked
