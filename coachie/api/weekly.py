import json
from datetime import date, datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coachie.api.errors import llm_failure, profile_not_found
from coachie.core.contracts import WeeklySummaryResponse
from coachie.db.session import get_db
from coachie.services.llm import LLMClient, LLMRequestError, LLMResponseError, get_llm_client
from coachie.services.profiles import ProfileNotFoundError
from coachie.services.weekly_review import (
    WeeklyReviewExistsError,
    WeeklyReviewForm,
    generate_weekly_summary,
    get_weekly_review,
    submit_weekly_review,
)

router = APIRouter(tags=["weekly"])


class WeeklySummaryRequest(BaseModel):
    profileId: Optional[str] = None


class WeeklyReviewFormInput(BaseModel):
    weight_lbs: Optional[float] = Field(default=None, gt=0, le=1000)
    effort: int = Field(ge=1, le=10)
    wentWell: str = Field(default="", max_length=2000)
    gotInTheWay: str = Field(default="", max_length=2000)


class WeeklyReviewRequest(BaseModel):
    profileId: Optional[str] = None
    weekStart: Optional[date] = None
    form: Optional[WeeklyReviewFormInput] = None


class WeeklyReviewResponse(BaseModel):
    analysis: dict[str, Any]
    updatedCalorieTarget: Optional[int] = None
    updatedWorkoutSchedule: Optional[list[Any]] = None


class StoredWeeklyReview(BaseModel):
    id: str
    profileId: str
    weekStart: date
    weight_lbs: Optional[float] = None
    effort: int
    wentWell: Optional[str] = None
    gotInTheWay: Optional[str] = None
    analysis: dict[str, Any]
    newCalorieTarget: Optional[int] = None
    createdAt: datetime


@router.post("/weekly-summary", response_model=WeeklySummaryResponse)
def weekly_summary(
    payload: WeeklySummaryRequest,
    db: Session = Depends(get_db),
    llm_client: LLMClient = Depends(get_llm_client),
) -> WeeklySummaryResponse:
    if not payload.profileId:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing profileId in request body")
    try:
        return generate_weekly_summary(db, llm_client, payload.profileId)
    except ProfileNotFoundError as exc:
        raise profile_not_found(exc)
    except (LLMResponseError, LLMRequestError) as exc:
        raise llm_failure(exc, "weekly_summary", payload.profileId)


@router.post("/weekly-review", response_model=WeeklyReviewResponse)
def weekly_review(
    payload: WeeklyReviewRequest,
    db: Session = Depends(get_db),
    llm_client: LLMClient = Depends(get_llm_client),
) -> WeeklyReviewResponse:
    if not payload.profileId or not payload.form:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing profileId or form")
    if not payload.weekStart:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing weekStart")
    if payload.weekStart.weekday() != 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="weekStart must be a Monday")
    form = WeeklyReviewForm(
        weight_lbs=payload.form.weight_lbs,
        effort=payload.form.effort,
        went_well=payload.form.wentWell.strip(),
        got_in_the_way=payload.form.gotInTheWay.strip(),
    )
    try:
        outcome = submit_weekly_review(db, llm_client, payload.profileId, payload.weekStart, form)
    except ProfileNotFoundError as exc:
        raise profile_not_found(exc)
    except WeeklyReviewExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Weekly review already submitted")
    except (LLMResponseError, LLMRequestError) as exc:
        db.rollback()
        raise llm_failure(exc, "weekly_review", payload.profileId)
    return WeeklyReviewResponse(
        analysis=outcome.analysis.model_dump(mode="json"),
        updatedCalorieTarget=outcome.updated_calorie_target,
        updatedWorkoutSchedule=outcome.updated_workout_schedule,
    )


@router.get("/weekly-review/{profile_id}/{week_start}", response_model=StoredWeeklyReview)
def read_weekly_review(profile_id: str, week_start: date, db: Session = Depends(get_db)) -> StoredWeeklyReview:
    row = get_weekly_review(db, profile_id, week_start)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Weekly review not found")
    try:
        analysis = json.loads(row.analysis_json or "{}")
    except json.JSONDecodeError:
        analysis = {}
    return StoredWeeklyReview(
        id=row.id,
        profileId=row.profile_id,
        weekStart=row.week_start,
        weight_lbs=row.weight_lbs,
        effort=row.effort,
        wentWell=row.went_well,
        gotInTheWay=row.got_in_the_way,
        analysis=analysis if isinstance(analysis, dict) else {},
        newCalorieTarget=row.new_calorie_target,
        createdAt=row.created_at,
    )
