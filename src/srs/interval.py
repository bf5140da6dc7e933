"""SM-2 interval and ease-factor update rule."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
DEFAULT_INTERVAL_DAYS = 1
CRAMMING_PENALTY = 0.1


@dataclass(frozen=True, slots=True)
class IntervalResult:
    """Outcome of grading a single review."""

    next_interval_days: int
    new_ease_factor: float


def _round_half_up(value: float, places: int = 0) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def clamp_ease_factor(value: float) -> float:
    """Floor the ease factor at the minimum and keep it to two decimals."""
    return max(MIN_EASE_FACTOR, float(_round_half_up(value, 2)))


def penalize_ease_factor(ease_factor: float, penalty: float = CRAMMING_PENALTY) -> float:
    """Lower the ease factor used as input when a review looks like cramming."""
    return clamp_ease_factor(ease_factor - penalty)


def compute_next_interval(
    quality_rating: int,
    current_interval_days: int,
    ease_factor: float,
    repetition_number: int,
) -> IntervalResult:
    """Return the next interval and ease factor for a graded review.

    ``quality_rating`` must already be validated to lie in 0..5. A lapse
    (rating below 3) always schedules the next review for tomorrow; the first
    two successful repetitions use the fixed 1 and 6 day steps, after which the
    previous interval is multiplied by the updated ease factor.
    """
    interval = max(DEFAULT_INTERVAL_DAYS, current_interval_days or 0)
    miss = 5 - quality_rating

    new_ease_factor = clamp_ease_factor(ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))

    if quality_rating < 3:
        next_interval = 1
    elif repetition_number <= 1:
        next_interval = 1
    elif repetition_number == 2:
        next_interval = 6
    else:
        next_interval = int(_round_half_up(interval * new_ease_factor))

    return IntervalResult(
        next_interval_days=max(1, next_interval),
        new_ease_factor=new_ease_factor,
    )
