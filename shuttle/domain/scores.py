from __future__ import annotations

from shuttle.domain.models import Match


class InvalidScoreError(ValueError):
    """Raised when a submitted score pair cannot decide a match."""


def _parse_score(value: object) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidScoreError("Both scores must be entered.")
    if isinstance(value, bool):
        raise InvalidScoreError("Scores must be non-negative integers.")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidScoreError("Scores must be non-negative integers.")
        number = int(value)
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            try:
                as_float = float(text)
            except ValueError:
                raise InvalidScoreError("Scores must be numbers.") from None
            if not as_float.is_integer():
                raise InvalidScoreError("Scores must be non-negative integers.") from None
            number = int(as_float)
    if number < 0:
        raise InvalidScoreError("Scores must be non-negative integers.")
    return number


def validate_scores(score_a: object, score_b: object) -> tuple[int, int]:
    """Return both scores as integers or raise ``InvalidScoreError``."""
    parsed_a = _parse_score(score_a)
    parsed_b = _parse_score(score_b)
    if parsed_a == parsed_b:
        raise InvalidScoreError("Scores cannot be equal; a match needs a winner.")
    return parsed_a, parsed_b


def winner_for_scores(match: Match, score_a: int, score_b: int) -> str:
    if match.competitor_a_id is None or match.competitor_b_id is None:
        raise ValueError(f"Match {match.id} does not have both competitors yet.")
    return match.competitor_a_id if score_a > score_b else match.competitor_b_id
