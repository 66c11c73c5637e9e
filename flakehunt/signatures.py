"""Heuristic failure-signature detection for failure messages."""

import re
from collections.abc import Sequence

from flakehunt.models.outcome import FailureSignature

MAX_EXCERPT_LENGTH = 200
ELLIPSIS = "..."

# Evaluated top to bottom; the first matching pattern wins.
SIGNATURE_PATTERNS: Sequence[tuple[FailureSignature, Sequence[re.Pattern[str]]]] = (
    (
        "TIMEOUT",
        (
            re.compile(r"timeout", re.IGNORECASE),
            re.compile(r"timed?\s*out", re.IGNORECASE),
            re.compile(r"exceeded\s*time", re.IGNORECASE),
        ),
    ),
    (
        "SELECTOR",
        (
            re.compile(r"selector", re.IGNORECASE),
            re.compile(r"element\s*not\s*found", re.IGNORECASE),
            re.compile(r"cy\.get", re.IGNORECASE),
        ),
    ),
    (
        "NETWORK",
        (
            re.compile(r"network", re.IGNORECASE),
            re.compile(r"ECONNREFUSED", re.IGNORECASE),
            re.compile(r"fetch\s*failed", re.IGNORECASE),
        ),
    ),
    (
        "DOM_DETACH",
        (
            re.compile(r"detached", re.IGNORECASE),
            re.compile(r"stale\s*element", re.IGNORECASE),
        ),
    ),
    (
        "ASSERTION",
        (
            re.compile(r"\bexpect\b", re.IGNORECASE),
            re.compile(r"\bassert", re.IGNORECASE),
            re.compile(r"\btoBe\b", re.IGNORECASE),
            re.compile(r"\btoEqual\b", re.IGNORECASE),
        ),
    ),
)


def detect_signature(failure_message: str | None) -> FailureSignature:
    """Map a failure message to a failure signature.

    Categories are checked in a fixed priority order, so a message such as
    ``"expect(response).timeout exceeded"`` resolves to ``TIMEOUT`` rather
    than ``ASSERTION``. Empty messages and messages matching no pattern
    resolve to ``UNKNOWN``.
    """
    if not failure_message:
        return "UNKNOWN"

    for signature, patterns in SIGNATURE_PATTERNS:
        if any(pattern.search(failure_message) for pattern in patterns):
            return signature

    return "UNKNOWN"


def truncate_excerpt(text: str | None, max_length: int = MAX_EXCERPT_LENGTH) -> str:
    """Collapse whitespace and cap the length, marking truncation with ``...``."""
    normalized = " ".join((text or "").split())
    if len(normalized) <= max_length:
        return normalized
    return normalized[: max_length - len(ELLIPSIS)] + ELLIPSIS
