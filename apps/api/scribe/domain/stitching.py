"""Reassembly of chunk transcripts whose edges repeat the same speech."""

import re

_EDGE_PUNCTUATION = re.compile(r"^\W+|\W+$")
_MIN_MATCH_WORDS = 3


def _normalize_word(word: str) -> str:
    return _EDGE_PUNCTUATION.sub("", word.lower())


def _find_overlap_end(tail: list[str], window: list[str]) -> int | None:
    """Index in ``window`` just past the longest suffix of ``tail`` found in it."""
    for length in range(len(tail), _MIN_MATCH_WORDS - 1, -1):
        needle = tail[-length:]
        for index in range(len(window) - length + 1):
            if window[index : index + length] == needle:
                return index + length
    return None


def stitch_transcripts(texts: list[str], overlap_words: int = 8, search_window: int = 50) -> str:
    """Join chunk transcripts, dropping text repeated across chunk boundaries.

    Words are compared lower-cased with leading and trailing punctuation
    removed; the output keeps the original words. For each next chunk, the
    longest suffix (at least three words) of the last ``overlap_words`` words
    so far is looked up within the first ``search_window`` words of that chunk,
    and only the words after the match are appended. Without a match the whole
    chunk is appended.
    """
    chunks = [text.strip() for text in texts if text and text.strip()]
    if not chunks:
        return ""

    result = chunks[0]
    for chunk in chunks[1:]:
        result_words = result.split()
        next_words = chunk.split()

        tail = [_normalize_word(word) for word in result_words[-overlap_words:]] if overlap_words > 0 else []
        window = [_normalize_word(word) for word in next_words[:search_window]]

        overlap_end = _find_overlap_end(tail, window)
        if overlap_end is None:
            result = f"{result} {chunk}"
            continue

        remainder = next_words[overlap_end:]
        if remainder:
            result = f"{result} {' '.join(remainder)}"
    return result
