import pytest

from rebus.services.games.guessing import MATCH_CORRECT, MATCH_PARTIAL, MATCH_WRONG
from rebus.services.games.scoring import calc_score


def test_correct_score_follows_time_ratio():
    assert calc_score(21, 30, MATCH_CORRECT, 1.0) == 700
    assert calc_score(30, 30, MATCH_CORRECT, 1.0) == 1000


def test_correct_score_has_floor():
    assert calc_score(0, 30, MATCH_CORRECT, 1.0) == 50
    assert calc_score(1, 30, MATCH_CORRECT, 0.9) == 50


@pytest.mark.parametrize('remaining', [0, 0.01, 1, 1.5, 7, 14.99, 29.9, 30])
def test_correct_never_below_floor(remaining):
    assert calc_score(remaining, 30, MATCH_CORRECT, 0.8) >= 50


def test_score_does_not_increase_as_time_passes():
    for match, similarity in ((MATCH_CORRECT, 1.0), (MATCH_PARTIAL, 0.7)):
        previous = None
        remaining = 30.0
        while remaining >= 0:
            score = calc_score(remaining, 30, match, similarity)
            if previous is not None:
                assert score <= previous
            previous = score
            remaining -= 0.25


def test_partial_score_is_scaled():
    assert calc_score(30, 30, MATCH_PARTIAL, 0.8) == 400
    assert calc_score(15, 30, MATCH_PARTIAL, 0.6) == 150


def test_partial_floor_applies_before_multiplier():
    assert calc_score(0, 30, MATCH_PARTIAL, 0.6) == 15


def test_rounds_half_up():
    assert calc_score(1, 16, MATCH_CORRECT, 1.0) == 63


def test_wrong_scores_nothing():
    assert calc_score(30, 30, MATCH_WRONG, 0.2) == 0


def test_negative_remaining_is_treated_as_zero():
    assert calc_score(-5, 30, MATCH_CORRECT, 1.0) == 50
