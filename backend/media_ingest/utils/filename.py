"""
Storage filename generation.

Turns an arbitrary client-supplied filename into a lower-case, filesystem-safe
name with a uniqueness suffix, e.g.::

    >>> generate_safe_filename("My Holiday (1).JPG")
    'my-holiday-1-1718000000000-9f86d081.jpg'

The timestamp plus random token only guard against collisions between
concurrent uploads of the same name. They are not a security boundary.
"""

import re
import secrets
import time


FALLBACK_BASE: str = "file"

# Keep the composed name far below the 255-byte filesystem limit
MAX_BASE_LENGTH: int = 100
MAX_EXTENSION_LENGTH: int = 16

_UNSAFE_RUN = re.compile(r"[^a-z0-9-]+")
_HYPHEN_RUN = re.compile(r"-{2,}")


def _normalize(segment: str) -> str:
    segment = _UNSAFE_RUN.sub("-", segment.lower())
    return _HYPHEN_RUN.sub("-", segment).strip("-")


def split_extension(original_name: str) -> tuple[str, str]:
    """
    Split a name at its last dot into (base, extension-with-dot).

    The extension is normalized and dropped when nothing safe remains, so
    ``"archive."`` and ``"...."`` have no extension.
    """
    if "." not in original_name:
        return original_name, ""

    base, _, last = original_name.rpartition(".")
    extension = _normalize(last)[:MAX_EXTENSION_LENGTH].strip("-")
    return base, f".{extension}" if extension else ""


def generate_safe_filename(original_name: str) -> str:
    """
    Build a collision-resistant storage name from a user-supplied filename.

    The result is ``{base}-{unix_millis}-{8 hex chars}{extension}`` and only
    ever contains ``[a-z0-9.-]``. Dots inside the base are treated as
    separators, so the only dot left is the one before the extension. An
    empty or fully stripped base becomes ``"file"``.

    Args:
        original_name: Filename as sent by the client, possibly empty

    Returns:
        Sanitized filename; never raises
    """
    base, extension = split_extension(original_name or "")
    safe_base = _normalize(base)[:MAX_BASE_LENGTH].rstrip("-") or FALLBACK_BASE

    timestamp = int(time.time() * 1000)
    token = secrets.token_hex(4)

    return f"{safe_base}-{timestamp}-{token}{extension}"


def replace_extension(original_name: str, extension: str) -> str:
    """Swap the extension of a client filename, e.g. after re-encoding to JPEG."""
    base, _ = split_extension(original_name or "")
    return f"{base}{extension}"
