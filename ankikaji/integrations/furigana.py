"""Offline furigana annotation backed by MeCab and the IPADIC dictionary."""
from __future__ import annotations

from functools import lru_cache
import logging
from typing import Any, Iterator

from ..domain.derivation import AnnotationUnavailable

logger = logging.getLogger(__name__)

_IPADIC_READING_INDEX = 7
_KATAKANA_START = ord("ァ")
_KATAKANA_END = ord("ヶ")
_KANA_OFFSET = ord("ァ") - ord("ぁ")


def katakana_to_hiragana(text: str) -> str:
    return "".join(
        chr(ord(ch) - _KANA_OFFSET) if _KATAKANA_START <= ord(ch) <= _KATAKANA_END else ch
        for ch in text
    )


def is_kanji(ch: str) -> bool:
    code = ord(ch)
    return (
        0x4E00 <= code <= 0x9FFF
        or 0x3400 <= code <= 0x4DBF
        or 0xF900 <= code <= 0xFAFF
        or ch in "々〆ヶ"
    )


def has_kanji(text: str) -> bool:
    return any(is_kanji(ch) for ch in text)


def format_ruby(surface: str, reading: str) -> str:
    """Render one token as ` base[reading]okurigana`, keeping kana outside the brackets."""
    reading = katakana_to_hiragana(reading)
    if not surface or not reading or not has_kanji(surface):
        return surface
    folded = katakana_to_hiragana(surface)
    if folded == reading:
        return surface

    prefix_len = 0
    while (
        prefix_len < len(surface)
        and prefix_len < len(reading)
        and not is_kanji(surface[prefix_len])
        and folded[prefix_len] == reading[prefix_len]
    ):
        prefix_len += 1
    suffix_len = 0
    while (
        suffix_len < len(surface) - prefix_len
        and suffix_len < len(reading) - prefix_len
        and not is_kanji(surface[-1 - suffix_len])
        and folded[-1 - suffix_len] == reading[-1 - suffix_len]
    ):
        suffix_len += 1

    base = surface[prefix_len : len(surface) - suffix_len]
    ruby = reading[prefix_len : len(reading) - suffix_len]
    if not base or not ruby:
        return surface
    return f"{surface[:prefix_len]} {base}[{ruby}]{surface[len(surface) - suffix_len:]}"


@lru_cache(maxsize=1)
def _load_tagger():
    try:
        import ipadic
        import MeCab
    except Exception:
        logger.warning("MeCab or ipadic is not installed; furigana annotation is unavailable")
        return None
    try:
        return MeCab.Tagger(ipadic.MECAB_ARGS)
    except Exception:
        logger.exception("MeCab tagger initialization failed")
        return None


class MecabAnnotator:
    """Callable annotator turning plain Japanese text into `漢字[かんじ]` markup."""

    def __init__(self, *, tagger: Any = None, cache_size: int = 4096, logger_instance=None) -> None:
        self.logger = logger_instance or logger
        self._tagger = tagger
        if cache_size > 0:
            self._annotate_cached = lru_cache(maxsize=cache_size)(self._annotate_uncached)
        else:
            self._annotate_cached = self._annotate_uncached

    def __call__(self, text: str) -> str:
        return self.annotate(text)

    def annotate(self, text: str) -> str:
        if not text or not has_kanji(text):
            return text
        return self._annotate_cached(text)

    def _get_tagger(self):
        if self._tagger is None:
            self._tagger = _load_tagger()
        if self._tagger is None:
            raise AnnotationUnavailable("MeCab tagger is not available")
        return self._tagger

    def _annotate_uncached(self, text: str) -> str:
        tagger = self._get_tagger()
        pieces: list[str] = []
        cursor = 0
        for surface, reading in _iter_tokens(tagger, text):
            position = text.find(surface, cursor)
            if position < 0:
                continue
            pieces.append(text[cursor:position])
            pieces.append(format_ruby(surface, reading) if reading else surface)
            cursor = position + len(surface)
        pieces.append(text[cursor:])
        return "".join(pieces).strip()


def _iter_tokens(tagger: Any, text: str) -> Iterator[tuple[str, str]]:
    node = tagger.parseToNode(text)
    while node is not None:
        surface = node.surface
        if surface:
            features = str(node.feature or "").split(",")
            reading = ""
            if len(features) > _IPADIC_READING_INDEX:
                candidate = features[_IPADIC_READING_INDEX]
                if candidate and candidate != "*":
                    reading = candidate
            yield surface, reading
        node = node.next
