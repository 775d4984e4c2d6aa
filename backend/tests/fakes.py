"""Test doubles and constants shared by the test modules."""

import asyncio
from pathlib import Path
from typing import Any


# EXIF tag ids
ORIENTATION_TAG = 0x0112
MAKE_TAG = 0x010F


class FakeProber:
    """
    MediaProber stand-in.

    Records every path it is given together with the bytes found there, then
    returns ``result`` or raises ``error``.
    """

    def __init__(
        self,
        result: dict[str, Any] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.result = result if result is not None else {"format": {"duration": "12.5"}}
        self.error = error
        self.delay = delay
        self.calls: list[str] = []
        self.seen_bytes: list[bytes] = []

    async def probe(self, path: str) -> dict[str, Any]:
        self.calls.append(path)
        self.seen_bytes.append(Path(path).read_bytes())
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result
