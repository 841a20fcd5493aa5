from __future__ import annotations

import math
import secrets
import statistics
from typing import Any

from django.db.models import Avg
from django.db.models import Count

from livepoll.audience.models import AnonymousResponse

from .models import PollSession
from .models import Question

# Look-alike characters (i, l, o, 0, 1) are left out.
JOIN_CODE_LETTERS = "abcdefghjkmnpqrstuvwxyz"
JOIN_CODE_DIGITS = "23456789"
JOIN_CODE_ATTEMPTS = 10
MAX_HISTOGRAM_BINS = 10


class JoinCodeExhaustedError(RuntimeError):
    pass


def generate_join_code(rng: secrets.SystemRandom | None = None) -> str:
    """Four characters: letter, digit, letter, digit."""
    rng = rng or secrets.SystemRandom()
    return "".join(
        rng.choice(alphabet)
        for alphabet in (
            JOIN_CODE_LETTERS,
            JOIN_CODE_DIGITS,
            JOIN_CODE_LETTERS,
            JOIN_CODE_DIGITS,
        )
    )


def generate_unique_join_code(rng=None) -> str:
    for _ in range(JOIN_CODE_ATTEMPTS):
        code = generate_join_code(rng)
        if not PollSession.objects.filter(join_code=code).exists():
            return code
    msg = "Failed to generate unique join code"
    raise JoinCodeExhaustedError(msg)


def build_histogram(values: list[float]) -> list[dict[str, Any]]:
    """Equal-width bins over ``[min, max]``; the last bin is closed on the right."""
    values = sorted(values)
    low, high = values[0], values[-1]
    bin_count = min(MAX_HISTOGRAM_BINS, max(1, math.ceil(math.sqrt(len(values)))))
    width = (high - low) / bin_count or 1
    bins = []
    for i in range(bin_count):
        bin_min = low + i * width
        bin_max = low + (i + 1) * width
        last = i == bin_count - 1
        count = sum(
            1
            for v in values
            if bin_min <= v and (v <= bin_max if last else v < bin_max)
        )
        bins.append(
            {
                "range": f"{bin_min:.1f}-{bin_max:.1f}",
                "min": bin_min,
                "max": bin_max,
                "count": count,
            },
        )
    return bins


def _parse_number(text: str) -> float | None:
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def numeric_stats(values: list[float]) -> dict[str, float]:
    low, high = min(values), max(values)
    return {
        "mean": statistics.fmean(values),
        "median": statistics.median(values),
        "min": low,
        "max": high,
        "range": high - low,
    }


def build_response_stats(question: Question) -> dict[str, Any]:
    responses = AnonymousResponse.objects.filter(question=question)
    totals = responses.aggregate(total=Count("id"), avg_time=Avg("response_time"))
    total = totals["total"] or 0

    distribution = None
    numbers = None
    if question.question_type in (
        Question.QuestionType.MULTIPLE_CHOICE,
        Question.QuestionType.TRUE_FALSE,
    ):
        distribution = list(
            responses.values("answer_text")
            .annotate(count=Count("id"))
            .order_by("-count", "answer_text"),
        )
    elif question.question_type == Question.QuestionType.NUMERIC:
        parsed = (
            _parse_number(text)
            for text in responses.values_list("answer_text", flat=True)
        )
        values = [v for v in parsed if v is not None]
        if values:
            numbers = numeric_stats(values)
            distribution = build_histogram(values)

    return {
        "questionId": question.id,
        "questionType": question.question_type,
        "totalResponses": total,
        "anonymousResponses": total,
        "averageResponseTime": totals["avg_time"],
        "answerDistribution": distribution,
        "numericStats": numbers,
    }
