from __future__ import annotations

import hashlib
import re

_WHITESPACE = re.compile(r"\s+")


def content_hash(data: str | bytes) -> str:
    """Return the SHA-256 hex digest of the given content."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def normalize_text(text: str) -> str:
    """Lower-case and collapse runs of whitespace to a single space."""
    return _WHITESPACE.sub(" ", text).strip().lower()
