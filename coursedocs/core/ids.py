"""
ID and name generation: build_id, sanitized file/folder names.

Rules:
- build_id is unique per build (never reused)
- sanitized names keep [A-Za-z0-9_-] only, at most 50 characters
"""

import re
import uuid
from datetime import UTC, datetime

from coursedocs.domain.constants import SANITIZED_NAME_MAX_LENGTH

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_\-]", re.IGNORECASE)
_REPEATED_UNDERSCORES = re.compile(r"_+")


def generate_build_id() -> str:
    """
    Build ID generation.

    Uniqueness: UUID v4
    Format: BLD-{timestamp}-{uuid[:8]}

    Returns:
        build_id string
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"BLD-{timestamp}-{unique}"


def sanitize_name(value: str) -> str:
    """
    Make a string safe for archive paths and filenames.

    - every character outside [A-Za-z0-9_-] → underscore
    - runs of underscores collapsed
    - at most 50 characters

    Args:
        value: raw name (course title, id, ...)

    Returns:
        sanitized string (may be empty)
    """
    sanitized = _UNSAFE_CHARS.sub("_", value)
    sanitized = _REPEATED_UNDERSCORES.sub("_", sanitized)
    return sanitized[:SANITIZED_NAME_MAX_LENGTH]
