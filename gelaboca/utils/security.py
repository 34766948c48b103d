"""Security helpers: PII masking and safe logging (minimal)."""
import re

_LONG_DIGITS = re.compile(r"\b\d{10,}\b")
_EMAIL = re.compile(r"\b[\w.+-]+@[\w-]+\.[\w.-]+\b")


def mask_pii(text: str) -> str:
    if not text:
        return ""
    masked = _LONG_DIGITS.sub("[REDACTED]", text)
    return _EMAIL.sub("[EMAIL]", masked)


def preview(text: str, limit: int = 120) -> str:
    """Masked, single-line preview of user text for log lines."""
    flat = " ".join(mask_pii(text).split())
    return flat if len(flat) <= limit else flat[:limit] + "..."
