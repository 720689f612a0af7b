"""
Picklable user functions for tests.

Everything here lives at module level so the dispatch tables that reference
it survive the trip through the distribution cache.
"""

from __future__ import annotations

from tagflow.api.functions import FnCombiner, FnMapper, FnReducer, KVType


def split_words(line: str):
    return [(w, 1) for w in line.split()]


def first_letters(line: str):
    return [(w[0], w) for w in line.split()]


def word_lengths(line: str):
    return [(w, len(w)) for w in line.split()]


def add(a: int, b: int) -> int:
    return a + b


def format_count(key: str, values) -> list[str]:
    return [f"{key}\t{sum(values)}"]


def join_words(key: str, values) -> list[str]:
    return [f"{key}:{','.join(sorted(values))}"]


def negate(k):
    return -k


def lowercase(k: str) -> str:
    return k.lower()


WORD_COUNT_TYPE = KVType(key="str", value="int")
LETTER_TYPE = KVType(key="str", value="str")

WORDS = FnMapper(split_words, WORD_COUNT_TYPE, input_codec="str")
LETTERS = FnMapper(first_letters, LETTER_TYPE, input_codec="str")
LENGTHS = FnMapper(word_lengths, WORD_COUNT_TYPE, input_codec="str")
SUM = FnCombiner(add)
COUNT_TEXT = FnReducer(format_count, output_codec="str")
JOIN_TEXT = FnReducer(join_words, output_codec="str")
