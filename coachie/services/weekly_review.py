import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from coachie.core.adherence import compute_adherence
from coachie.core.calorie_policy import adjust_calorie_target
from coachie.core.contracts import (
    WEEKLY_REVIEW_SYSTEM_PROMPT,
    WEEKLY_SUMMARY_SYSTEM_PROMPT,
    WeeklyReviewAnalysis,
    WeeklySummaryResponse,
)
from coachie.core.dates import week_range_from_start
from coachie.db.models import WeeklyReview
from coachie.services.checkin_store import checkin_to_dict, list_checkins_in_range, list_recent_checkins
from coachie.services.llm import LLMClient, request_structured
from coachie.services.profiles import get_profile_or_raise, load_json_list, profile_to_payload

logger = logging.getLogger("uvicorn.error")

SUMMARY_CHECKIN_LIMIT = 14


class WeeklyReviewExistsError(RuntimeError):
    def __init__(self, profile_id: str, week_start: date):
        super().__init__(f"Weekly review for week {week_start.isoformat()} already submitted")
        self.profile_id = profile_id
        self.week_start = week_start


@dataclass
class WeeklyReviewForm:
    weight_lbs: Optional[float]
    effort: int
    went_well: str
    got_in_the_way: str


@dataclass
class WeeklyReviewOutcome:
    analysis: WeeklyReviewAnalysis
    updated_calorie_target: Optional[int]
    updated_workout_schedule: Optional[list[Any]]


def generate_weekly_summary(db: Session, llm: LLMClient, profile_id: str) -> WeeklySummaryResponse:
    profile = get_profile_or_raise(db, profile_id)
    checkins = list_recent_checkins(db, profile_id, limit=SUMMARY_CHECKIN_LIMIT)
    adherence = compute_adherence(checkins)
    user_content = {
        "clientProfile": profile_to_payload(profile),
        "dailyCheckins": [checkin_to_dict(row) for row in checkins],
        "adherence": adherence.model_dump(),
    }
    return request_structured(
        llm,
        WEEKLY_SUMMARY_SYSTEM_PROMPT,
        user_content,
        WeeklySummaryResponse,
        overrides={"adherence": adherence.model_dump()},
    )


def get_weekly_review(db: Session, profile_id: str, week_start: date) -> Optional[WeeklyReview]:
    return (
        db.query(WeeklyReview)
        .filter(WeeklyReview.profile_id == profile_id, WeeklyReview.week_start == week_start)
        .first()
    )


def submit_weekly_review(
    db: Session, llm: LLMClient, profile_id: str, week_start: date, form: WeeklyReviewForm
) -> WeeklyReviewOutcome:
    """Analyse one Monday-start week and apply the bounded calorie nudge.

    The profile update and the review row are committed together after the
    model answer has been validated; any earlier failure leaves both untouched.
    """
    profile = get_profile_or_raise(db, profile_id)
    if get_weekly_review(db, profile_id, week_start):
        raise WeeklyReviewExistsError(profile_id, week_start)

    range_start, range_end = week_range_from_start(week_start)
    checkins = list_checkins_in_range(db, profile_id, range_start, range_end)
    adherence = compute_adherence(checkins)
    user_content = {
        "profile": profile_to_payload(profile),
        "adherence": adherence.model_dump(),
        "checkins": [checkin_to_dict(row) for row in checkins],
        "weeklyReview": {
            "weight_lbs": form.weight_lbs,
            "effort": form.effort,
            "wentWell": form.went_well,
            "gotInTheWay": form.got_in_the_way,
        },
    }
    analysis = request_structured(
        llm,
        WEEKLY_REVIEW_SYSTEM_PROMPT,
        user_content,
        WeeklyReviewAnalysis,
        overrides={"adherence": adherence.model_dump()},
    )

    current_target = profile.calorie_target
    final_target = current_target
    if current_target:
        final_target = adjust_calorie_target(current_target, analysis.calorieAdjustment.recommendation)
        profile.calorie_target = final_target
    workout_schedule = load_json_list(profile.weekly_workout_schedule_json)

    db.add(
        WeeklyReview(
            profile_id=profile_id,
            week_start=week_start,
            weight_lbs=form.weight_lbs,
            effort=form.effort,
            went_well=form.went_well,
            got_in_the_way=form.got_in_the_way,
            analysis_json=json.dumps(analysis.model_dump(mode="json")),
            new_calorie_target=final_target,
        )
    )
    db.commit()
    logger.info(
        "weekly_review_saved profile_id=%s week_start=%s recommendation=%s calorie_target=%s->%s",
        profile_id,
        week_start.isoformat(),
        analysis.calorieAdjustment.recommendation.value,
        current_target,
        final_target,
    )
    return WeeklyReviewOutcome(
        analysis=analysis,
        updated_calorie_target=final_target,
        updated_workout_schedule=workout_schedule,
    )
