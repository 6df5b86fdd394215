import pytest

from quickbrain.freshness import freshness, freshness_label
from quickbrain.models import Note

from conftest import NOW, days_ago


def _viewed(days):
    return Note(title="n", last_viewed_at=days_ago(days))


@pytest.mark.parametrize("days", [0, 1, 2.99, 3])
def test_fresh_for_first_three_days(days):
    assert freshness(_viewed(days), NOW) == 1.0


@pytest.mark.parametrize("days", [30, 31, 400])
def test_forgotten_after_thirty_days(days):
    assert freshness(_viewed(days), NOW) == 0.0


def test_linear_ramp_midpoint():
    assert freshness(_viewed(16.5), NOW) == pytest.approx(0.5)


def test_strictly_decreasing_between_anchors():
    scores = [freshness(_viewed(d), NOW) for d in (3.5, 5, 10, 20, 29.5)]
    assert all(a > b for a, b in zip(scores, scores[1:]))


def test_viewed_in_future_counts_as_fresh():
    assert freshness(_viewed(-2), NOW) == 1.0


def test_labels():
    assert freshness_label(1.0) == "Fresh"
    assert freshness_label(0.71) == "Fresh"
    assert freshness_label(0.7) == "Fading"
    assert freshness_label(0.31) == "Fading"
    assert freshness_label(0.3) == "Forgotten"
    assert freshness_label(0.0) == "Forgotten"
