"""Tests for provider watermark decoding."""

import base64

import pytest

from lrcsync.core.models import AudioTags
from lrcsync.core.watermark import (
    WATERMARK_PREFIX,
    decode_watermark,
    extract_catalog_id,
    scan_file,
)


class TestDecodeWatermark:
    def test_decodes_music_id(self, watermark):
        assert decode_watermark(watermark(186001)) == 186001

    def test_string_music_id(self, watermark):
        assert decode_watermark(watermark("42")) == 42

    def test_surrounding_whitespace(self, watermark):
        assert decode_watermark(f"  {watermark(7)}\n") == 7

    @pytest.mark.parametrize("value", [None, "", "just a comment", "163 key"])
    def test_not_a_watermark(self, value):
        assert decode_watermark(value) is None

    def test_bad_base64(self):
        assert decode_watermark(WATERMARK_PREFIX + "!!!not base64!!!") is None

    def test_wrong_block_size(self):
        data = base64.b64encode(b"short").decode("ascii")
        assert decode_watermark(WATERMARK_PREFIX + data) is None

    def test_truncated_ciphertext(self, watermark):
        value = watermark(1)
        encrypted = base64.b64decode(value[len(WATERMARK_PREFIX):])
        truncated = base64.b64encode(encrypted[:-16]).decode("ascii")
        assert decode_watermark(WATERMARK_PREFIX + truncated) is None


class TestExtractCatalogId:
    def test_comment_first(self, watermark):
        tags = AudioTags(comment=watermark(1), description=watermark(2))
        assert extract_catalog_id(tags) == 1

    def test_description_fallback(self, watermark):
        tags = AudioTags(comment="ripped by me", description=watermark(2))
        assert extract_catalog_id(tags) == 2

    def test_no_watermark(self):
        assert extract_catalog_id(AudioTags(comment="nothing")) is None

    def test_file_scan_fallback(self, watermark, tmp_path):
        path = tmp_path / "song.mp3"
        path.write_bytes(b"ID3\x04\x00junk" + watermark(99).encode("ascii") + b"\x00\x00more")
        assert extract_catalog_id(AudioTags(), path) == 99

    def test_scan_missing_file(self, tmp_path):
        assert scan_file(tmp_path / "missing.mp3") is None

    def test_scan_without_watermark(self, tmp_path):
        path = tmp_path / "song.flac"
        path.write_bytes(b"fLaC" + b"\x00" * 100)
        assert scan_file(path) is None
