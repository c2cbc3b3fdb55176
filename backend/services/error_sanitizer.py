import re
from typing import Optional


_SUSPICIOUS_ERROR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"traceback", re.IGNORECASE),
    re.compile(r"\bfile\s+\".*?\.py\"", re.IGNORECASE),
    re.compile(r"/home/|/users/|/root/|[a-z]:\\", re.IGNORECASE),
)

# Google API keys start with "AIza" and are 39 chars long.
_API_KEY_PATTERN = re.compile(r"AIza[0-9A-Za-z_\-]{35}")


def sanitize_public_error_message(
    message: Optional[str],
    *,
    fallback: str = "Internal error",
    max_chars: int = 240,
) -> Optional[str]:
    """
    Sanitize an error message before returning it to clients.

    Treat `message` as untrusted: upstream SDK errors may echo request URLs
    (with the API key), stack traces or local file paths.
    """
    if not message:
        return None

    safe = message.encode("utf-8", errors="replace").decode("utf-8", errors="replace")
    safe = re.sub(r"\s+", " ", safe).strip()
    if not safe:
        return None

    if any(p.search(safe) for p in _SUSPICIOUS_ERROR_PATTERNS):
        return fallback

    safe = _API_KEY_PATTERN.sub("[redacted]", safe)

    if len(safe) > max_chars:
        return f"{safe[:max_chars]}…"
    return safe
