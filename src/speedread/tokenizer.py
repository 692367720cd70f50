from __future__ import annotations

import re
import unicodedata
from typing import Sequence

__all__ = [
    "PAUSE_CHARACTERS",
    "ends_with_pause",
    "is_cjk",
    "is_space",
    "is_word_char",
    "strip_text",
    "take_chunk",
    "tokenize",
]

PAUSE_CHARACTERS = frozenset(
    {
        ".",
        ",",
        "!",
        "?",
        ";",
        ":",
        "。",
        "，",
        "！",
        "？",
        "；",
        "：",
    }
)

# Script ranges for Han, Hiragana, Katakana and Hangul, sorted by start.
# Common-script codepoints (ー, ・, 〆, 。) are not listed.
_CJK_RANGES: tuple[tuple[int, int], ...] = (
    (0x1100, 0x11FF),  # Hangul Jamo
    (0x2E80, 0x2E99),  # CJK Radicals Supplement
    (0x2E9B, 0x2EF3),
    (0x2F00, 0x2FD5),  # Kangxi Radicals
    (0x3005, 0x3005),  # 々
    (0x3007, 0x3007),  # 〇
    (0x3021, 0x3029),  # Hangzhou numerals
    (0x302E, 0x302F),  # Hangul tone marks
    (0x3038, 0x303B),
    (0x3041, 0x3096),  # Hiragana
    (0x309D, 0x309F),
    (0x30A1, 0x30FA),  # Katakana
    (0x30FD, 0x30FF),
    (0x3131, 0x318E),  # Hangul Compatibility Jamo
    (0x31F0, 0x31FF),  # Katakana Phonetic Extensions
    (0x3200, 0x321E),  # Parenthesized Hangul
    (0x3260, 0x327E),  # Circled Hangul
    (0x32D0, 0x32FE),  # Circled Katakana
    (0x3300, 0x3357),  # Squared Katakana
    (0x3400, 0x4DBF),  # Extension A
    (0x4E00, 0x9FFF),  # CJK Unified Ideographs
    (0xA960, 0xA97C),  # Hangul Jamo Extended-A
    (0xAC00, 0xD7A3),  # Hangul Syllables
    (0xD7B0, 0xD7FB),  # Hangul Jamo Extended-B
    (0xF900, 0xFAFF),  # Compatibility Ideographs
    (0xFF66, 0xFF6F),  # Halfwidth Katakana
    (0xFF71, 0xFF9D),
    (0xFFA0, 0xFFDC),  # Halfwidth Hangul
    (0x1AFF0, 0x1AFFE),  # Kana Extended-B
    (0x1B000, 0x1B122),  # Kana Supplement / Extended-A
    (0x1B132, 0x1B132),  # Small Kana Extension
    (0x1B150, 0x1B152),
    (0x1B155, 0x1B155),
    (0x1B164, 0x1B167),
    (0x20000, 0x2A6DF),  # Extension B
    (0x2A700, 0x2EE5F),  # Extensions C-F, I
    (0x2F800, 0x2FA1F),  # Compatibility Supplement
    (0x30000, 0x323AF),  # Extensions G-H
)


def is_cjk(ch: str) -> bool:
    if not ch:
        return False
    code = ord(ch)
    for start, end in _CJK_RANGES:
        if code < start:
            return False
        if code <= end:
            return True
    return False


_BOM = "\ufeff"
_EDGE_SPACE_RE = re.compile(r"^[\s\ufeff]+|[\s\ufeff]+$")


def is_space(ch: str) -> bool:
    """Unicode whitespace, plus the byte-order mark."""
    return ch.isspace() or ch == _BOM


def strip_text(text: str | None) -> str:
    """``str.strip`` that also drops byte-order marks at either end."""
    return _EDGE_SPACE_RE.sub("", text or "")


def is_word_char(ch: str) -> bool:
    """Letters, numbers and combining marks (categories L*, N*, M*)."""
    if not ch:
        return False
    return unicodedata.category(ch)[0] in {"L", "N", "M"}


def tokenize(text: str) -> list[str]:
    """
    Split raw text into RSVP display tokens.

    Whitespace separates tokens and is dropped. Every Han/kana/Hangul
    character becomes its own token. Letters, digits and marks accumulate
    into a word; the first punctuation or symbol after a word is glued onto
    it and closes it. Punctuation with no open word is appended to the
    previous token, or opens a token of its own when nothing precedes it.
    """
    tokens: list[str] = []
    buffer: list[str] = []

    def flush() -> None:
        if buffer:
            tokens.append("".join(buffer))
            buffer.clear()

    for ch in text or "":
        if is_space(ch):
            flush()
            continue
        if is_cjk(ch):
            flush()
            tokens.append(ch)
            continue
        if is_word_char(ch):
            buffer.append(ch)
            continue
        if buffer:
            buffer.append(ch)
            flush()
            continue
        if tokens:
            # Orphan punctuation ("word ." or "漢字。") attaches backward.
            tokens[-1] += ch
            continue
        tokens.append(ch)

    flush()
    return tokens


def take_chunk(tokens: Sequence[str], cursor: int, size: int) -> list[str]:
    """Return up to ``size`` tokens starting at ``cursor``."""
    if cursor < 0:
        cursor = 0
    size = max(1, int(size))
    return list(tokens[cursor : cursor + size])


def ends_with_pause(chunk: Sequence[str]) -> bool:
    if not chunk:
        return False
    last = chunk[-1]
    if not last:
        return False
    return last[-1] in PAUSE_CHARACTERS
