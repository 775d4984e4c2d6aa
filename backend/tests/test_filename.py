"""
Storage Filename Generation Test Suite

Covers generate_safe_filename, split_extension and replace_extension:
- Output shape and allowed characters
- Base and extension normalization
- Fallback base for empty or fully stripped names
- Uniqueness across rapid calls
"""

import re
from unittest.mock import patch

import pytest

from media_ingest.utils.filename import (
    FALLBACK_BASE,
    MAX_BASE_LENGTH,
    MAX_EXTENSION_LENGTH,
    generate_safe_filename,
    replace_extension,
    split_extension,
)


SAFE_NAME = re.compile(r"^[a-z0-9-]*-\d+-[0-9a-f]{8}(\.[^.]+)?$")
ALLOWED_CHARS = re.compile(r"^[a-z0-9.-]+$")


class TestGenerateSafeFilename:
    """Tests for generate_safe_filename."""

    def test_spaces_and_parentheses_become_hyphens(self) -> None:
        """'My Photo (1).JPG' keeps a readable base and a lower-case extension."""
        with patch("media_ingest.utils.filename.time.time", return_value=1718000000.0), patch(
            "media_ingest.utils.filename.secrets.token_hex", return_value="deadbeef"
        ):
            result = generate_safe_filename("My Photo (1).JPG")

        assert result == "my-photo-1-1718000000000-deadbeef.jpg"

    def test_name_without_extension(self) -> None:
        with patch("media_ingest.utils.filename.secrets.token_hex", return_value="0123abcd"):
            result = generate_safe_filename("README")

        assert result.startswith("readme-")
        assert result.endswith("-0123abcd")
        assert "." not in result

    @pytest.mark.parametrize("original", ["", "....", "---", "(((", ".jpg", "   "])
    def test_empty_base_falls_back_to_file(self, original: str) -> None:
        result = generate_safe_filename(original)

        assert result.startswith(f"{FALLBACK_BASE}-")
        assert SAFE_NAME.match(result)

    def test_dots_inside_base_become_hyphens(self) -> None:
        result = generate_safe_filename("archive.tar.gz")

        assert result.startswith("archive-tar-")
        assert result.endswith(".gz")
        assert result.count(".") == 1

    def test_path_separators_are_removed(self) -> None:
        result = generate_safe_filename("../../etc/passwd")

        assert "/" not in result
        assert ".." not in result
        assert SAFE_NAME.match(result)

    def test_unicode_is_stripped(self) -> None:
        result = generate_safe_filename("Café Ünïcode.png")

        assert ALLOWED_CHARS.match(result)
        assert result.startswith("caf-n-code-")
        assert result.endswith(".png")

    def test_no_leading_or_trailing_hyphen_in_base(self) -> None:
        base = generate_safe_filename("--hello--.jpg").rsplit("-", 2)[0]

        assert base == "hello"

    def test_long_base_is_truncated(self) -> None:
        result = generate_safe_filename("a" * 500 + ".jpg")
        base = result.rsplit("-", 2)[0]

        assert len(base) == MAX_BASE_LENGTH
        assert len(result) < 255

    def test_unsafe_extension_is_normalized(self) -> None:
        _, extension = split_extension("photo.J P*G")

        assert extension == ".j-p-g"

    def test_long_extension_is_truncated(self) -> None:
        _, extension = split_extension("file." + "x" * 40)

        assert len(extension) == MAX_EXTENSION_LENGTH + 1

    @pytest.mark.parametrize(
        "original",
        ["photo.jpg", "My Photo (1).JPG", "", "....", "a.b.c.d", "video FINAL!!.MP4", "x" * 300, "ñ"],
    )
    def test_output_shape(self, original: str) -> None:
        result = generate_safe_filename(original)

        assert SAFE_NAME.match(result)
        assert ALLOWED_CHARS.match(result)

    def test_rapid_calls_are_unique(self) -> None:
        names = {generate_safe_filename("same.jpg") for _ in range(1000)}

        assert len(names) == 1000


class TestSplitAndReplaceExtension:
    """Tests for the extension helpers."""

    def test_split_on_last_dot(self) -> None:
        assert split_extension("a.b.JPG") == ("a.b", ".jpg")

    def test_trailing_dot_has_no_extension(self) -> None:
        assert split_extension("archive.") == ("archive", "")

    def test_no_dot(self) -> None:
        assert split_extension("plain") == ("plain", "")

    def test_replace_extension(self) -> None:
        assert replace_extension("holiday.PNG", ".jpg") == "holiday.jpg"

    def test_replace_extension_without_existing_extension(self) -> None:
        assert replace_extension("holiday", ".jpg") == "holiday.jpg"
