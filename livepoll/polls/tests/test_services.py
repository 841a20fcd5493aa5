import random

import pytest

from livepoll.polls import services
from livepoll.polls.models import PollSession
from livepoll.polls.services import JOIN_CODE_DIGITS
from livepoll.polls.services import JOIN_CODE_LETTERS
from livepoll.polls.services import JoinCodeExhaustedError
from livepoll.polls.services import build_histogram
from livepoll.polls.services import generate_join_code
from livepoll.polls.services import generate_unique_join_code
from livepoll.polls.services import numeric_stats


def test_join_code_alternates_letters_and_digits():
    code = generate_join_code(random.Random(4))  # noqa: S311

    assert len(code) == 4  # noqa: PLR2004
    assert code[0] in JOIN_CODE_LETTERS
    assert code[1] in JOIN_CODE_DIGITS
    assert code[2] in JOIN_CODE_LETTERS
    assert code[3] in JOIN_CODE_DIGITS


def test_join_code_alphabet_skips_lookalikes():
    for char in "ilo01":
        assert char not in JOIN_CODE_LETTERS + JOIN_CODE_DIGITS


@pytest.mark.django_db
def test_unique_join_code_gives_up_after_attempts(presenter, monkeypatch):
    PollSession.objects.create(presenter=presenter, title="Taken", join_code="a2a2")
    monkeypatch.setattr(services, "generate_join_code", lambda rng=None: "a2a2")

    with pytest.raises(JoinCodeExhaustedError):
        generate_unique_join_code()


@pytest.mark.django_db
def test_unique_join_code_retries_on_collision(presenter, monkeypatch):
    PollSession.objects.create(presenter=presenter, title="Taken", join_code="a2a2")
    codes = iter(["a2a2", "a2a2", "b3b3"])
    monkeypatch.setattr(services, "generate_join_code", lambda rng=None: next(codes))

    assert generate_unique_join_code() == "b3b3"


def test_histogram_bins_cover_all_values():
    values = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0, 10.0]

    bins = build_histogram(values)

    assert len(bins) == 4  # ceil(sqrt(10))  # noqa: PLR2004
    assert sum(b["count"] for b in bins) == len(values)
    assert bins[0]["range"] == "1.0-3.2"
    assert bins[-1]["max"] == pytest.approx(10.0)


def test_histogram_caps_bin_count():
    bins = build_histogram([float(v) for v in range(500)])
    assert len(bins) == 10  # noqa: PLR2004


def test_histogram_of_identical_values():
    bins = build_histogram([5.0, 5.0, 5.0])

    assert len(bins) == 2  # noqa: PLR2004
    assert sum(b["count"] for b in bins) == 3  # noqa: PLR2004


def test_numeric_stats():
    stats = numeric_stats([1.0, 2.0, 3.0, 10.0])

    assert stats == {
        "mean": 4.0,
        "median": 2.5,
        "min": 1.0,
        "max": 10.0,
        "range": 9.0,
    }
