"""
Courier pallet box dimensions codec.

Dimensions are stored as a single "LxPxH" string (length x depth x height).
The canonical encoding written by this module is the compact form
"110x130x150". Older rows may carry spaces around the separator, an upper-case
or multiplication-sign separator, or a trailing unit with or without a space
("110 x 130 x 150 cm", "110x130x150cm"); the decoder accepts all of those.
"""

import re
from typing import NamedTuple, Optional

SEPARATOR = "x"
PRETTY_SEPARATOR = " × "
EMPTY_DISPLAY = "—"

_SPLIT_RE = re.compile(r"\s*[x×]\s*", re.IGNORECASE)
_UNIT_RE = re.compile(r"\s*(?:cm|mm|m)\s*$", re.IGNORECASE)
_FORBIDDEN_RE = re.compile(r"[x×\s]", re.IGNORECASE)


class Dimensions(NamedTuple):
    l: str
    p: str
    h: str

    @property
    def is_complete(self) -> bool:
        return bool(self.l and self.p and self.h)


EMPTY = Dimensions("", "", "")


def encode_dimensions(l: str, p: str, h: str) -> Optional[str]:
    """
    Encode three dimension fields as "LxPxH".

    Returns None when any field is blank after trimming, or contains a
    separator or inner whitespace and so could not be decoded back. None means
    "do not persist"; callers turn it into a validation message.
    """
    parts = [(value or "").strip() for value in (l, p, h)]
    if not all(parts):
        return None
    if any(_FORBIDDEN_RE.search(part) for part in parts):
        return None
    return SEPARATOR.join(parts)


def decode_dimensions(encoded: Optional[str]) -> Dimensions:
    """
    Split an encoded dimensions string into its three parts.

    Never raises: anything that does not yield exactly three non-empty parts
    decodes to three empty strings.
    """
    if not encoded:
        return EMPTY
    text = _UNIT_RE.sub("", encoded.strip())
    parts = [part.strip() for part in _SPLIT_RE.split(text)]
    if len(parts) != 3 or not all(parts):
        return EMPTY
    return Dimensions(*parts)


def is_valid_dimensions(encoded: Optional[str]) -> bool:
    return decode_dimensions(encoded).is_complete


def pretty_dimensions(encoded: Optional[str]) -> str:
    """Display form "110 × 130 × 150", or an em dash when missing or malformed."""
    dims = decode_dimensions(encoded)
    if not dims.is_complete:
        return EMPTY_DISPLAY
    return PRETTY_SEPARATOR.join(dims)
