"""Recover catalog IDs from the provider watermark embedded in audio tags.

Files downloaded from the provider carry a tag of the form
``163 key(Don't modify):<base64>``. The base64 payload is AES-128-ECB
encrypted JSON prefixed by ``music:``; its ``musicId`` field is the catalog ID.
"""

import base64
import binascii
import json
import re
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..utils.logging import get_logger
from .models import AudioTags

logger = get_logger(__name__)

# ----------------------
# Provider format constants
# ----------------------
WATERMARK_PREFIX = "163 key(Don't modify):"
WATERMARK_KEY = b"#14ljk_!\\]&0U<'("
# Decrypted text starts with "music:"
HEADER_LENGTH = 6
# Only the head of the file is scanned for an untagged watermark
SCAN_BYTES = 16 * 1024

_RAW_WATERMARK_RE = re.compile(re.escape(WATERMARK_PREFIX.encode("ascii")) + rb"([A-Za-z0-9+/=]+)")


def _decrypt(data: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(WATERMARK_KEY), modes.ECB()).decryptor()
    padded = decryptor.update(data) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def decode_watermark(text: Optional[str]) -> Optional[int]:
    """Return the catalog ID carried by a watermark string, or None.

    Any malformed input (missing prefix, bad base64, bad padding, bad JSON)
    yields None.
    """
    if not text:
        return None
    text = text.strip()
    if not text.startswith(WATERMARK_PREFIX):
        return None

    try:
        encrypted = base64.b64decode(text[len(WATERMARK_PREFIX):], validate=True)
        decrypted = _decrypt(encrypted).decode("utf-8")
        data = json.loads(decrypted[HEADER_LENGTH:])
        return int(data["musicId"])
    except (binascii.Error, ValueError, KeyError, TypeError) as e:
        logger.debug(f"Cannot decode watermark: {e}")
        return None


def scan_file(path: Path) -> Optional[int]:
    """Look for a watermark in the first bytes of a file."""
    try:
        with open(path, "rb") as f:
            head = f.read(SCAN_BYTES)
    except OSError as e:
        logger.debug(f"Cannot scan {path} for a watermark: {e}")
        return None

    match = _RAW_WATERMARK_RE.search(head)
    if not match:
        return None
    return decode_watermark(WATERMARK_PREFIX + match.group(1).decode("ascii"))


def extract_catalog_id(tags: AudioTags, path: Optional[Path] = None) -> Optional[int]:
    """Catalog ID from the comment tag, the description tag, then the file head."""
    for value in (tags.comment, tags.description):
        catalog_id = decode_watermark(value)
        if catalog_id is not None:
            return catalog_id
    if path is not None:
        return scan_file(Path(path))
    return None
