import re

_PLACEHOLDER_MARKERS = ("YOUR_", "your_", "changeme", "<")

_SECRET_PATTERNS = (
    # Query params like apiKey=, api_key=, key=, token=, secret=
    (re.compile(r"(?i)(api[_-]?key|key|token|secret)=([^&\s]+)"), r"\1=***REDACTED***"),
    # Authorization: Bearer <token> and bare bearer tokens
    (re.compile(r"(?i)Bearer\s+[A-Za-z0-9._\-]+"), "Bearer ***REDACTED***"),
    # OpenAI-style keys (sk-..., sk-proj-...) echoed back in provider errors
    (re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"), "sk-***REDACTED***"),
)


def redact_secrets(text: str) -> str:
    """Redact credentials from log lines and error strings before they leave the process."""
    if not isinstance(text, str):
        return text
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def is_configured_key(value) -> bool:
    """True when a key-like env value is set and is not a template placeholder."""
    if not value or not str(value).strip():
        return False
    s = str(value).strip()
    return not any(marker in s for marker in _PLACEHOLDER_MARKERS)
