import pytest

from rebus.services.games.guessing import (
    MATCH_CORRECT,
    MATCH_PARTIAL,
    MATCH_WRONG,
    evaluate_guess,
    levenshtein,
    normalize,
)


@pytest.mark.parametrize('raw, expected', [
    ('The Eiffel Tower', 'eiffel tower'),
    ('  An apple a DAY!! ', 'apple day'),
    ('Atlantis', 'atlantis'),
    ("Rock 'n' Roll", 'rock n roll'),
    ('the', ''),
    ('', ''),
])
def test_normalize(raw, expected):
    assert normalize(raw) == expected


def test_levenshtein():
    assert levenshtein('kitten', 'sitting') == 3
    assert levenshtein('', 'abc') == 3
    assert levenshtein('abc', '') == 3
    assert levenshtein('flaw', 'lawn') == levenshtein('lawn', 'flaw') == 2
    assert levenshtein('same', 'same') == 0


@pytest.mark.parametrize('guess', ['The Eiffel Tower', 'eiffel tower', 'EIFFEL  TOWER!', 'an eiffel, tower'])
def test_normalized_equal_is_exact(guess):
    assert evaluate_guess(guess, 'The Eiffel Tower') == (MATCH_CORRECT, 1.0)


def test_typo_within_threshold_is_correct():
    result = evaluate_guess('eifel tower', 'The Eiffel Tower')
    assert result.match == MATCH_CORRECT
    assert result.similarity == pytest.approx(1 - 1 / 12)


def test_substring_is_correct_with_fixed_similarity():
    assert evaluate_guess('tower', 'The Eiffel Tower') == (MATCH_CORRECT, 0.9)
    assert evaluate_guess('the great eiffel tower of paris', 'Eiffel Tower') == (MATCH_CORRECT, 0.9)


def test_typo_check_runs_before_substring_check():
    # 'eiffel towe' is both a substring and one edit away; the edit distance wins
    result = evaluate_guess('eiffel towe', 'The Eiffel Tower')
    assert result.match == MATCH_CORRECT
    assert result.similarity == pytest.approx(11 / 12)


def test_unrelated_guess_is_wrong():
    assert evaluate_guess('pizza', 'The Eiffel Tower').match == MATCH_WRONG


def test_empty_guess_is_wrong():
    assert evaluate_guess('', 'Pizza') == (MATCH_WRONG, 0.0)
    assert evaluate_guess('the a an', 'Pizza') == (MATCH_WRONG, 0.0)
    assert evaluate_guess('?!', 'Pizza') == (MATCH_WRONG, 0.0)


def test_short_answers_allow_two_edits():
    assert evaluate_guess('pxzzx', 'Pizza').match == MATCH_CORRECT
    assert evaluate_guess('plxxxt', 'planet').match == MATCH_WRONG


def test_long_answers_allow_three_edits():
    assert evaluate_guess('elxxxant', 'elephant').match == MATCH_CORRECT
    assert evaluate_guess('xxxxhant', 'elephant').match == MATCH_WRONG


def test_close_but_not_close_enough_is_partial():
    result = evaluate_guess('eiffxxxxower', 'Eiffel Tower')
    assert result.match == MATCH_PARTIAL
    assert result.similarity == pytest.approx(1 - 4 / 12)


def test_far_guess_reports_similarity():
    result = evaluate_guess('ligxxxxxse', 'lighthouse')
    assert result.match == MATCH_WRONG
    assert result.similarity == pytest.approx(0.5)
