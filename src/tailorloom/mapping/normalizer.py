"""Header normalization shared by every matcher."""

from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_header(header: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace, trim.

    ``"  Customer_E-mail "`` becomes ``"customeremail"``.
    """
    cleaned = _NON_WORD.sub("", header.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()
