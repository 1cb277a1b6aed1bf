"""
Grade bands and score clamping.

Percentages are graded against an ordered table of
(minimum, grade, remark) rows, highest minimum first. A score that sits
exactly on a threshold belongs to that threshold's band.
"""
import math
from decimal import ROUND_HALF_UP, Decimal

from core.choices import ExamType
from . import config


def clamp_score(value, maximum=100):
    """
    Clamp a raw score into [0, maximum].

    Anything that is not a finite number becomes 0, as does every score
    when the maximum itself is not positive. A maximum of None only
    applies the lower bound.
    """
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    if maximum is None:
        return value
    try:
        maximum = float(maximum)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(maximum) or maximum <= 0:
        return 0.0
    return min(value, maximum)


def get_grade_bands():
    return tuple(config.GRADE_BANDS)


def get_midterm_grade_bands():
    """Thresholds rescaled to the midterm maximum (50 by default, so each is halved)."""
    scale = config.DEFAULT_MIDTERM_MAX / 100
    return tuple((minimum * scale, grade, remark) for minimum, grade, remark in get_grade_bands())


def _lookup(score, bands, maximum):
    score = clamp_score(score, maximum)
    for minimum, grade, remark in bands:
        if score >= minimum:
            return {'grade': grade, 'remark': remark, 'min': minimum}
    minimum, grade, remark = bands[-1]
    return {'grade': grade, 'remark': remark, 'min': minimum}


def grade_for_score(percentage):
    """Return {'grade', 'remark', 'min'} for a percentage (0-100)."""
    return _lookup(percentage, get_grade_bands(), 100)


def grade_for_midterm_score(score):
    """Return {'grade', 'remark', 'min'} for a midterm score out of 50."""
    return _lookup(score, get_midterm_grade_bands(), config.DEFAULT_MIDTERM_MAX)


def round1(value):
    """Round to one decimal place, halves away from zero (12.25 -> 12.3)."""
    return float(Decimal(str(float(value))).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def grade_for_record(exam_type, total_score, percentage):
    """Midterm records are graded on their total out of 50, finals on the percentage."""
    if exam_type == ExamType.MIDTERM:
        return grade_for_midterm_score(total_score)
    return grade_for_score(percentage)
