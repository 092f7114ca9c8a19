"""IELTS band score conversion and rounding.

Listening and reading papers have 40 questions; raw correct-answer counts are
mapped to the 9-band scale through lookup tables. Writing and speaking bands
arrive already on the 9-band scale from the AI evaluator.
"""

import math

from ielts_mock_test.errors import InvalidScoreError

MAX_RAW_SCORE = 40

# Raw scores missing from a table fall back to these bands.
FALLBACK_BAND_LOW = 2.5  # raw < 10
FALLBACK_BAND_HIGH = 5.0  # raw >= 10

LISTENING_BANDS: dict[int, float] = {
    40: 9.0, 39: 8.5, 38: 8.5, 37: 8.0, 36: 8.0, 35: 7.5,
    34: 7.5, 33: 7.0, 32: 7.0, 31: 6.5, 30: 6.5,
    29: 6.5, 28: 6.0, 27: 6.0, 26: 6.0, 25: 5.5,
    24: 5.5, 23: 5.5, 22: 5.0, 21: 5.0, 20: 5.0,
    19: 4.5, 18: 4.5, 17: 4.5, 16: 4.0, 15: 4.0,
    14: 4.0, 13: 3.5, 12: 3.5, 11: 3.5, 10: 3.0,
}

ACADEMIC_READING_BANDS: dict[int, float] = {
    40: 9.0, 39: 8.5, 38: 8.5, 37: 8.0, 36: 7.5, 35: 7.5,
    34: 7.0, 33: 7.0, 32: 6.5, 31: 6.5, 30: 6.5,
    29: 6.0, 28: 6.0, 27: 6.0, 26: 5.5, 25: 5.5,
    24: 5.5, 23: 5.0, 22: 5.0, 21: 5.0, 20: 5.0,
    19: 4.5, 18: 4.5, 17: 4.5, 16: 4.0, 15: 4.0,
    14: 4.0, 13: 3.5, 12: 3.5, 11: 3.5, 10: 3.0,
}

GENERAL_READING_BANDS: dict[int, float] = {
    40: 9.0, 39: 8.5, 38: 8.5, 37: 8.0, 36: 8.0, 35: 7.5,
    34: 7.5, 33: 7.0, 32: 7.0, 31: 6.5, 30: 6.5,
    29: 6.0, 28: 6.0, 27: 6.0, 26: 5.5, 25: 5.5,
    24: 5.5, 23: 5.0, 22: 5.0, 21: 5.0, 20: 4.5,
    19: 4.5, 18: 4.0, 17: 4.0, 16: 4.0, 15: 3.5,
    14: 3.5, 13: 3.0, 12: 3.0, 11: 3.0, 10: 2.5,
}

BAND_DESCRIPTIONS: dict[float, str] = {
    9.0: "Expert User",
    8.5: "Very Good User",
    8.0: "Very Good User",
    7.5: "Good User",
    7.0: "Good User",
    6.5: "Competent User",
    6.0: "Competent User",
    5.5: "Modest User",
    5.0: "Modest User",
    4.5: "Limited User",
    4.0: "Limited User",
    3.5: "Extremely Limited User",
    3.0: "Extremely Limited User",
}


class MissingSectionScoreError(ValueError):
    """Raised when an overall band is requested without all four sections."""

    def __init__(self, missing: list[str]):
        super().__init__(
            f"All section scores are required to calculate overall band score "
            f"(missing: {', '.join(missing)})"
        )
        self.missing = missing


def _lookup(table: dict[int, float], raw_score: int, paper: str) -> float:
    if raw_score < 0 or raw_score > MAX_RAW_SCORE:
        raise InvalidScoreError(
            f"{paper} raw score must be between 0 and {MAX_RAW_SCORE}, got {raw_score}"
        )
    band = table.get(raw_score)
    if band is None:
        return FALLBACK_BAND_LOW if raw_score < 10 else FALLBACK_BAND_HIGH
    return band


def convert_listening_score_to_band(raw_score: int) -> float:
    """Convert a raw listening score (out of 40) to a band score."""
    return _lookup(LISTENING_BANDS, raw_score, "Listening")


def convert_reading_score_to_band(raw_score: int, is_academic: bool = True) -> float:
    """Convert a raw reading score (out of 40) to a band score.

    Args:
        raw_score: Number of correct answers.
        is_academic: Use the Academic table, else General Training.
    """
    table = ACADEMIC_READING_BANDS if is_academic else GENERAL_READING_BANDS
    return _lookup(table, raw_score, "Reading")


def round_to_ielts_band(score: float) -> float:
    """Round a real-valued score onto the band scale.

    Fractions below .25 round down, fractions from .25 up to (not including)
    .75 become .5, and .75 or more rounds up to the next whole band.
    """
    whole = math.floor(score)
    fraction = score - whole
    if fraction < 0.25:
        return float(whole)
    if fraction < 0.75:
        return whole + 0.5
    return float(math.ceil(score))


def calculate_overall_band_score(
    listening: float | None,
    reading: float | None,
    writing: float | None,
    speaking: float | None,
) -> float:
    """Average the four section bands and round with IELTS quarter rounding.

    Raises:
        MissingSectionScoreError: if any section score is None.
    """
    scores = {
        "listening": listening,
        "reading": reading,
        "writing": writing,
        "speaking": speaking,
    }
    missing = [name for name, value in scores.items() if value is None]
    if missing:
        raise MissingSectionScoreError(missing)
    average = sum(scores.values()) / 4
    return round_to_ielts_band(average)


def get_band_score_description(band: float) -> str:
    return BAND_DESCRIPTIONS.get(band, "Intermittent User")


def get_performance_level(band: float) -> str:
    if band >= 8.0:
        return "Excellent"
    elif band >= 7.0:
        return "Very Good"
    elif band >= 6.0:
        return "Good"
    elif band >= 5.0:
        return "Satisfactory"
    elif band >= 4.0:
        return "Needs Improvement"
    else:
        return "Poor"


def get_study_recommendations(band: float) -> list[str]:
    """Study advice for the results view, keyed on the overall band."""
    if band >= 8.0:
        return [
            "Excellent work! Focus on maintaining consistency",
            "Practice with authentic IELTS materials",
            "Work on advanced academic vocabulary",
        ]
    if band >= 7.0:
        return [
            "Great progress! Focus on fine-tuning skills",
            "Practice with varied accents and speakers",
            "Work on complex sentence structures",
        ]
    if band >= 6.0:
        return [
            "Good foundation! Continue regular practice",
            "Focus on listening and reading for specific information",
            "Plan essays before writing to improve coherence",
        ]
    if band >= 5.0:
        return [
            "Keep practicing regularly",
            "Focus on basic comprehension with clear, slow materials",
            "Practice identifying key words and phrases",
        ]
    return [
        "Start with basic listening and reading exercises",
        "Focus on everyday vocabulary",
        "Practice short, simple answers in speaking",
    ]
