"""Utility functions module."""

from .error_capture import ErrorCapture, get_error_capture
from .helpers import poll_until, safe_navigate, screenshot_b64, settle
from .masking import mask_document_number, mask_email, mask_phone, mask_sensitive_data

__all__ = [
    "ErrorCapture",
    "get_error_capture",
    "poll_until",
    "safe_navigate",
    "screenshot_b64",
    "settle",
    "mask_document_number",
    "mask_email",
    "mask_phone",
    "mask_sensitive_data",
]
