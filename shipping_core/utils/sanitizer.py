"""
Log sanitization for provider responses.

Provider error bodies routinely echo back buyer names, phone numbers,
emails and postal codes. Anything that came from a provider goes
through sanitize_for_logging() before it reaches a log line.
ShippingError messages keep the provider text (truncated) so AWB and
order numbers stay readable; log them through here as well.
"""
import re
from typing import Any, Dict, List, Tuple

_PATTERNS: List[Tuple["re.Pattern[str]", str]] = [
    # Emails first, before the digit patterns chew on them
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    # Phone numbers
    (re.compile(r"\+\d{1,3}[-.\s]?\d{1,4}[-.\s]?\d{1,4}[-.\s]?\d{1,9}\b"), "[PHONE]"),
    (re.compile(r"\b\(\d{3}\)\s*\d{3}[-.\s]?\d{4}\b"), "[PHONE]"),
    (re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b"), "[PHONE]"),
    # Postal codes (US ZIP+4, IN PIN, US ZIP, UK, CA)
    (re.compile(r"\b\d{5}-\d{4}\b"), "[ZIP]"),
    (re.compile(r"\b\d{6}\b"), "[PIN]"),
    (re.compile(r"\b\d{5}\b"), "[ZIP]"),
    (re.compile(r"\b[A-Z]{1,2}\d{1,2}[A-Z]?\s*\d[A-Z]{2}\b"), "[POSTAL]"),
    (re.compile(r"\b[A-Z]\d[A-Z]\s*\d[A-Z]\d\b"), "[POSTAL]"),
]

# Keys whose values are never logged, at any depth
SECRET_KEYS = frozenset({
    "password",
    "token",
    "access_token",
    "client_secret",
    "api_secret",
    "secret_key",
    "authorization",
})


def sanitize_for_logging(text: Any, max_length: int = 500) -> str:
    """
    Remove PII from text for safe logging.

    Args:
        text: Text that may contain PII (non-strings are str()'d)
        max_length: Maximum length of result

    Returns:
        Sanitized text safe for logging
    """
    if text is None or text == "":
        return ""

    sanitized = str(text)[:max_length]
    for pattern, replacement in _PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def redact_secrets(data: Any) -> Any:
    """Return a copy of a JSON-like structure with credential values masked."""
    if isinstance(data, dict):
        redacted: Dict[str, Any] = {}
        for key, value in data.items():
            if str(key).lower() in SECRET_KEYS:
                redacted[key] = "***"
            else:
                redacted[key] = redact_secrets(value)
        return redacted
    if isinstance(data, list):
        return [redact_secrets(item) for item in data]
    return data
