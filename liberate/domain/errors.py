"""Error taxonomy and secret redaction."""

import re


class LiberationError(Exception):
    """Base class for pipeline errors."""


class InputError(LiberationError):
    """Invalid input rejected before any remote call."""


class ConversionServiceError(LiberationError):
    """The conversion service call failed as a whole."""


class PackagingError(LiberationError):
    """Two packaging rules targeted the same archive path."""


class StageTransitionError(LiberationError):
    """An operation was attempted from a stage that does not allow it."""


class TransferError(LiberationError):
    """A remote-session primitive failed."""


class RemoteDirectoryExists(TransferError):
    """Directory creation refused because the directory already exists."""


class RemotePermissionError(TransferError):
    """Directory creation or write refused by the remote host."""


class OrchestrationError(LiberationError):
    """The orchestration endpoint rejected or failed the submission."""


# Ordered (pattern, replacement) rules; earlier rules win on overlapping text.
REDACTION_RULES: list[tuple[str, str]] = [
    (r"(?i)\b(bearer)\s+[A-Za-z0-9\-._~+/]+=*", r"\1 [REDACTED]"),
    (
        r"(?i)\b(password|passwd|pwd|secret|token|api[_-]?key|access[_-]?key)"
        r"(\s*[=:]\s*)(\"[^\"]*\"|'[^']*'|[^\s,;&]+)",
        r"\1\2[REDACTED]",
    ),
    (r"(?i)\b([a-z][a-z0-9+.\-]*://)[^/\s:@]+:[^/\s@]+@", r"\1[REDACTED]@"),
    (r"\beyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+", "[REDACTED]"),
    (r"\b(sk|pk|rk)_(live|test)_[A-Za-z0-9]{8,}", "[REDACTED]"),
    (r"\b[A-Fa-f0-9]{32,}\b", "[REDACTED]"),
]


def redact(text: str | None, rules: list[tuple[str, str]] | None = None) -> str:
    """Replace secret-looking substrings in ``text``.

    Args:
        text: Text to redact
        rules: Optional (pattern, replacement) list, defaults to REDACTION_RULES

    Returns:
        Redacted text
    """
    if not text:
        return ""

    redacted = text
    for pattern, replacement in rules if rules is not None else REDACTION_RULES:
        redacted = re.sub(pattern, replacement, redacted)
    return redacted


def mask_host(host: str) -> str:
    """Keep the first three characters of a host for log lines."""
    return f"{host[:3]}***" if host else "missing"
