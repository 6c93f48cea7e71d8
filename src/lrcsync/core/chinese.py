"""Traditional to simplified Chinese conversion backed by OpenCC's tables."""

from functools import lru_cache

from opencc import OpenCC


@lru_cache(maxsize=1)
def _converter() -> OpenCC:
    return OpenCC("t2s")


def traditional_to_simplified(text: str) -> str:
    if not text:
        return text
    return _converter().convert(text)
