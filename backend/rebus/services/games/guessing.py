"""Fuzzy guess evaluation.

Guesses are compared against the answer after both are normalized. The
classification steps run in a fixed order and the first one that matches
wins, so e.g. a close typo is scored by its edit distance even when it is
also a substring of the answer.
"""
import re
from typing import NamedTuple

MATCH_CORRECT = 'correct'
MATCH_PARTIAL = 'partial'
MATCH_WRONG = 'wrong'

PARTIAL_THRESHOLD = 0.6
SUBSTRING_SIMILARITY = 0.9

_NON_ALNUM = re.compile(r'[^a-z0-9 ]')
_ARTICLES = re.compile(r'\b(the|a|an)\b')
_WHITESPACE = re.compile(r'\s+')


class GuessResult(NamedTuple):
    match: str
    similarity: float


def normalize(text: str) -> str:
    text = _NON_ALNUM.sub('', (text or '').lower())
    text = _ARTICLES.sub('', text)
    return _WHITESPACE.sub(' ', text).strip()


def levenshtein(a: str, b: str) -> int:
    """Minimum number of single-character inserts, deletes or substitutions."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def typo_threshold(normalized_answer: str) -> int:
    return 2 if len(normalized_answer) <= 6 else 3


def evaluate_guess(guess: str, answer: str) -> GuessResult:
    g = normalize(guess)
    a = normalize(answer)
    if not g:
        return GuessResult(MATCH_WRONG, 0.0)
    if g == a:
        return GuessResult(MATCH_CORRECT, 1.0)

    distance = levenshtein(g, a)
    similarity = 1 - distance / max(len(g), len(a))

    if distance <= typo_threshold(a):
        return GuessResult(MATCH_CORRECT, similarity)
    if a in g or g in a:
        return GuessResult(MATCH_CORRECT, SUBSTRING_SIMILARITY)
    if similarity >= PARTIAL_THRESHOLD:
        return GuessResult(MATCH_PARTIAL, similarity)
    return GuessResult(MATCH_WRONG, similarity)
