from typing import Iterable, Optional, Protocol

from pydantic import BaseModel


class CheckinLike(Protocol):
    did_workout: bool
    hit_calorie_goal: bool
    workout_rating: Optional[int]


class Adherence(BaseModel):
    totalDays: int
    daysWorkedOut: int
    daysHitCalories: int
    avgWorkoutRating: Optional[float] = None


def compute_adherence(rows: Iterable[CheckinLike]) -> Adherence:
    """Flat counts over the given check-ins; the mean ignores unrated days."""
    total = 0
    worked_out = 0
    hit_calories = 0
    ratings: list[int] = []
    for row in rows:
        total += 1
        if row.did_workout:
            worked_out += 1
        if row.hit_calorie_goal:
            hit_calories += 1
        if row.workout_rating is not None:
            ratings.append(row.workout_rating)
    avg_rating = round(sum(ratings) / len(ratings), 2) if ratings else None
    return Adherence(
        totalDays=total,
        daysWorkedOut=worked_out,
        daysHitCalories=hit_calories,
        avgWorkoutRating=avg_rating,
    )
