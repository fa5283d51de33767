"""Helpers for picking answers out of a response row's raw data.

Both the batch advancer (what to classify) and the analytics service (how
to tally) need the same view of a row: which answers are free text, which
are numeric ratings, and which are empty.
"""

from __future__ import annotations

import re
from typing import Any

_NUMERIC_PATTERN = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


def as_number(value: Any) -> float | None:
    """Return ``value`` as a float if it is a number or a numeric string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _NUMERIC_PATTERN.match(value.strip()):
        return float(value.strip())
    return None


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def text_answers(
    raw_data: dict[str, Any],
    question_columns: list[str],
    min_length: int = 4,
) -> dict[str, str]:
    """Return ``{column: text}`` for free-text answers, in column order.

    An answer is free text when it is a non-numeric string of at least
    ``min_length`` characters after stripping.
    """
    answers: dict[str, str] = {}
    for column in question_columns:
        value = raw_data.get(column)
        if not isinstance(value, str):
            continue
        stripped = value.strip()
        if len(stripped) < min_length or as_number(stripped) is not None:
            continue
        answers[column] = stripped
    return answers


def numeric_answers(raw_data: dict[str, Any], question_columns: list[str]) -> list[float]:
    """Return every numeric answer of the row, in column order."""
    numbers: list[float] = []
    for column in question_columns:
        number = as_number(raw_data.get(column))
        if number is not None:
            numbers.append(number)
    return numbers


def format_value(value: Any) -> str:
    """Render an answer as a distribution key (``4.0`` -> ``"4"``)."""
    number = as_number(value)
    if number is not None and number.is_integer():
        return str(int(number))
    if number is not None:
        return str(number)
    return str(value).strip()
