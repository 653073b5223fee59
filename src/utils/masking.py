"""Utility functions for masking sensitive data in logs and outputs."""

import re
from typing import Any, Dict, Optional, Set

_EMAIL_PATTERN = re.compile(r"\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b")
# Chilean RUT with optional thousands dots: 11.111.111-1 / 11111111-K
_RUT_PATTERN = re.compile(r"\b\d{1,2}\.?\d{3}\.?\d{3}-[\dkK]\b")


def mask_document_number(document_number: str) -> str:
    """
    Mask an identity document number (RUT) for logging purposes.

    Example: 11111111-1 -> ******11-1

    Args:
        document_number: Document number to mask

    Returns:
        Masked document number keeping only the last characters
    """
    if not document_number or len(document_number) < 4:
        return "***"
    return "*" * (len(document_number) - 4) + document_number[-4:]


def mask_email(email: str) -> str:
    """
    Mask email address for logging purposes.

    Example: user@example.com -> u***@e***.com

    Args:
        email: Email address to mask

    Returns:
        Masked email address
    """
    if not email or "@" not in email:
        return "***"

    parts = email.split("@")
    if len(parts) != 2:
        return "***"

    local, domain = parts
    masked_local = local[0] + "***" if local else "***"

    domain_parts = domain.split(".")
    if len(domain_parts) >= 2 and domain_parts[0]:
        masked_domain = domain_parts[0][0] + "***." + ".".join(domain_parts[1:])
    else:
        masked_domain = "***"

    return f"{masked_local}@{masked_domain}"


def mask_phone(phone: str) -> str:
    """
    Mask phone number for logging purposes.

    Example: +56912345678 -> +***5678

    Args:
        phone: Phone number to mask

    Returns:
        Masked phone number
    """
    if not phone or len(phone) < 4:
        return "***"
    if phone.startswith("+"):
        return "+***" + phone[-4:]
    return "***" + phone[-4:]


def mask_sensitive_data(text: str) -> str:
    """
    Mask emails and RUTs embedded in free text (page dumps, error messages).

    Args:
        text: Text that may contain sensitive data

    Returns:
        Text with sensitive data masked
    """
    text = _EMAIL_PATTERN.sub(lambda m: mask_email(m.group()), text)
    text = _RUT_PATTERN.sub(lambda m: mask_document_number(m.group()), text)
    return text


def mask_sensitive_dict(
    data: Dict[str, Any], sensitive_keys: Optional[Set[str]] = None
) -> Dict[str, Any]:
    """
    Mask sensitive values in a dictionary for logging.

    Args:
        data: Dictionary with potentially sensitive data
        sensitive_keys: Extra keys to mask completely

    Returns:
        New dictionary with masked sensitive values
    """
    sensitive_keys = sensitive_keys or set()
    masked_data: Dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if key_lower in sensitive_keys:
            masked_data[key] = "********"
        elif key_lower in {"document_number", "rut"} and isinstance(value, str):
            masked_data[key] = mask_document_number(value)
        elif key_lower == "email" and isinstance(value, str):
            masked_data[key] = mask_email(value)
        elif key_lower in {"phone", "phone_number", "mobile"} and isinstance(value, str):
            masked_data[key] = mask_phone(value)
        elif isinstance(value, dict):
            masked_data[key] = mask_sensitive_dict(value, sensitive_keys)
        else:
            masked_data[key] = value

    return masked_data
