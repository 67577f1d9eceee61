"""Word list reading and hashcat-style mask expansion."""

from __future__ import annotations

from typing import Iterable

MASK_LETTERS = "abcdefghijklmnopqrstuvwxyz"
MASK_DIGITS = "0123456789"
MASK_SPECIAL = "-"

MAX_MASK_SIZE = 3

_MASK_CHARSETS = {
    "a": MASK_LETTERS + MASK_DIGITS + MASK_SPECIAL,
    "d": MASK_DIGITS,
    "u": MASK_LETTERS,
    "l": MASK_LETTERS,
    "s": MASK_SPECIAL,
}


class MaskError(ValueError):
    """Raised when a mask is malformed or too large."""


def read_word_list(reader: Iterable[str]) -> list[str]:
    """Return the non-empty, stripped lines of reader that hold no hyphen."""
    words = []
    for line in reader:
        word = line.strip()
        if word and "-" not in word:
            words.append(word)
    return words


def expand_mask(word: str) -> list[str]:
    """Return every word the mask in word matches.

    Supported placeholders are ?a, ?d, ?l, ?u and ?s; at most three may appear.
    """
    if word.count("?") > MAX_MASK_SIZE:
        raise MaskError(f"Exceeded maximum mask size ({MAX_MASK_SIZE}): {word}")

    prefix, sep, rest = word.partition("?")
    if not sep:
        return [word]
    if not rest:
        return []

    chars = _MASK_CHARSETS.get(rest[0])
    if chars is None:
        raise MaskError(f"Improper mask used: {word}")

    expanded = []
    for ch in chars:
        expanded.extend(expand_mask(prefix + ch + rest[1:]))
    return expanded


def expand_mask_wordlist(wordlist: Iterable[str]) -> list[str]:
    """Expand each word of the list, skipping words whose masks are invalid."""
    expanded = []
    for word in wordlist:
        try:
            expanded.extend(expand_mask(word))
        except MaskError:
            continue
    return expanded