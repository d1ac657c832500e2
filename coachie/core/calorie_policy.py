from enum import Enum

CALORIE_STEP = 150
CALORIE_FLOOR = 1200


class CalorieRecommendation(str, Enum):
    keep = "keep"
    lower_slightly = "lower_slightly"
    raise_slightly = "raise_slightly"


def adjust_calorie_target(current: int, recommendation: CalorieRecommendation) -> int:
    """Clamp the model's direction into a fixed step; raises have no ceiling."""
    recommendation = CalorieRecommendation(recommendation)
    if recommendation == CalorieRecommendation.lower_slightly:
        return max(CALORIE_FLOOR, current - CALORIE_STEP)
    if recommendation == CalorieRecommendation.raise_slightly:
        return current + CALORIE_STEP
    return current
