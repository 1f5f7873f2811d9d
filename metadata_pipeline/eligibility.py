"""Eligibility checks applied before enqueue and again before processing."""
from __future__ import annotations

from metadata_pipeline.constants import ALLOWED_EXTENSIONS, INCOMING_PREFIX


def is_eligible(key: str) -> bool:
    """True if the key ends with an allowed image extension (case-insensitive)."""
    return key.lower().endswith(ALLOWED_EXTENSIONS)


def is_incoming(key: str, prefix: str = INCOMING_PREFIX) -> bool:
    return key.startswith(prefix)
