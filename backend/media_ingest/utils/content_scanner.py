"""
Heuristic scan for active content hidden inside uploads.

The buffer is decoded as UTF-8 with replacement characters and searched for a
handful of script-injection markers. This is a placeholder line of defence,
not an antivirus: compressed media occasionally contains one of these byte
runs and is then flagged, and trivially obfuscated payloads are missed.
"""

import codecs
import re

from media_ingest.models.media import ScanResult


SUSPICIOUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"onload=", re.IGNORECASE),
    re.compile(r"onerror=", re.IGNORECASE),
)

SUSPICIOUS_REASON: str = "Suspicious content detected"
CLEAN_REASON: str = "No suspicious content found"

# Bytes decoded and searched per step
SCAN_CHUNK_SIZE: int = 1024 * 1024
# Characters carried into the next step so a marker split across chunks is found
SCAN_OVERLAP: int = max(len(pattern.pattern) for pattern in SUSPICIOUS_PATTERNS) - 1


def scan_for_malicious_content(buffer: bytes) -> ScanResult:
    """
    Flag buffers that contain script-injection markers.

    Never raises on binary input; invalid UTF-8 sequences become U+FFFD.
    Large buffers are decoded and searched in SCAN_CHUNK_SIZE steps.

    Example:
        >>> scan_for_malicious_content(b"<script>alert(1)</script>").is_safe
        False
    """
    data = bytes(buffer or b"")
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    tail = ""

    for start in range(0, max(len(data), 1), SCAN_CHUNK_SIZE):
        chunk = data[start : start + SCAN_CHUNK_SIZE]
        final = start + SCAN_CHUNK_SIZE >= len(data)
        content = tail + decoder.decode(chunk, final=final)

        for pattern in SUSPICIOUS_PATTERNS:
            if pattern.search(content):
                return ScanResult(is_safe=False, reason=SUSPICIOUS_REASON)

        tail = content[-SCAN_OVERLAP:]

    return ScanResult(is_safe=True, reason=CLEAN_REASON)
