from datetime import date, datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from coachie.api.errors import profile_not_found
from coachie.core.adherence import Adherence
from coachie.core.dates import current_week_days, current_week_range, previous_week_start, today_local
from coachie.core.macros import GOAL_FACTORS, compute_calorie_target, lbs_to_kg
from coachie.db.models import ClientProfile
from coachie.db.session import get_db
from coachie.services.checkin_store import load_adherence
from coachie.services.profiles import ProfileNotFoundError, get_profile_or_raise, load_json_list
from coachie.services.sms import normalize_phone_number
from coachie.services.weekly_review import get_weekly_review

router = APIRouter(prefix="/profiles", tags=["profiles"])

VALID_GENDERS = {"male", "female"}
VALID_EQUIPMENT = {"none", "home_gym", "commercial_gym"}
VALID_UNITS = {"kg", "lbs"}


class ProfileCreateRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: Optional[str] = Field(default=None, max_length=120)
    age: int = Field(ge=13, le=100)
    gender: str
    height_cm: float = Field(ge=100, le=250)
    weight: float = Field(gt=0, le=1000)
    goal_weight: Optional[float] = Field(default=None, gt=0, le=1000)
    weight_unit: str = "kg"
    goal_type: str
    current_workouts_per_week: Optional[int] = Field(default=None, ge=0, le=14)
    realistic_workouts_per_week: int = Field(ge=0, le=14)
    work_schedule: Optional[str] = Field(default=None, max_length=255)
    preferred_workout_time: Optional[str] = Field(default=None, max_length=64)
    equipment: str = "commercial_gym"
    estimated_steps: Optional[str] = Field(default=None, max_length=32)
    goal_why: Optional[str] = Field(default=None, max_length=2000)
    past_struggles: Optional[str] = Field(default=None, max_length=2000)
    tone_notes: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def validate_fields(self):
        self.gender = self.gender.strip().lower()
        if self.gender not in VALID_GENDERS:
            raise ValueError("gender must be male/female")
        if self.goal_type not in GOAL_FACTORS:
            raise ValueError("goal_type must be lose_weight/gain_muscle/recomp")
        if self.equipment not in VALID_EQUIPMENT:
            raise ValueError("equipment must be none/home_gym/commercial_gym")
        if self.weight_unit not in VALID_UNITS:
            raise ValueError("weight_unit must be kg/lbs")
        return self

    def weight_kg(self) -> float:
        return lbs_to_kg(self.weight) if self.weight_unit == "lbs" else round(self.weight, 1)

    def goal_weight_kg(self) -> Optional[float]:
        if self.goal_weight is None:
            return None
        return lbs_to_kg(self.goal_weight) if self.weight_unit == "lbs" else round(self.goal_weight, 1)


class SmsSettingsRequest(BaseModel):
    phone_number: Optional[str] = Field(default=None, max_length=32)
    allow_sms_checkins: bool = False

    @model_validator(mode="after")
    def validate_fields(self):
        if self.allow_sms_checkins and not normalize_phone_number(self.phone_number):
            raise ValueError("phone_number is required to enable SMS check-ins")
        return self


class ProfileResponse(BaseModel):
    id: str
    first_name: str
    last_name: Optional[str] = None
    age: int
    gender: str
    height_cm: float
    weight_kg: float
    goal_type: str
    goal_weight_kg: Optional[float] = None
    current_workouts_per_week: Optional[int] = None
    realistic_workouts_per_week: int
    work_schedule: Optional[str] = None
    preferred_workout_time: Optional[str] = None
    equipment: str
    estimated_steps: Optional[str] = None
    calorie_target: Optional[int] = None
    step_target: Optional[int] = None
    workout_split: Optional[list[Any]] = None
    weekly_workout_schedule: Optional[list[Any]] = None
    goal_why: Optional[str] = None
    past_struggles: Optional[str] = None
    tone_notes: Optional[str] = None
    phone_number: Optional[str] = None
    allow_sms_checkins: bool
    created_at: datetime


class WeekStatsResponse(BaseModel):
    weekStart: date
    today: date
    adherence: Adherence
    days: list[dict[str, Any]]
    calorieTarget: Optional[int] = None
    weeklyReviewDue: bool
    reviewWeekStart: date


def _to_response(profile: ClientProfile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        first_name=profile.first_name,
        last_name=profile.last_name,
        age=profile.age,
        gender=profile.gender,
        height_cm=profile.height_cm,
        weight_kg=profile.weight_kg,
        goal_type=profile.goal_type,
        goal_weight_kg=profile.goal_weight_kg,
        current_workouts_per_week=profile.current_workouts_per_week,
        realistic_workouts_per_week=profile.realistic_workouts_per_week,
        work_schedule=profile.work_schedule,
        preferred_workout_time=profile.preferred_workout_time,
        equipment=profile.equipment,
        estimated_steps=profile.estimated_steps,
        calorie_target=profile.calorie_target,
        step_target=profile.step_target,
        workout_split=load_json_list(profile.workout_split_json),
        weekly_workout_schedule=load_json_list(profile.weekly_workout_schedule_json),
        goal_why=profile.goal_why,
        past_struggles=profile.past_struggles,
        tone_notes=profile.tone_notes,
        phone_number=profile.phone_number,
        allow_sms_checkins=bool(profile.allow_sms_checkins),
        created_at=profile.created_at,
    )


def _load_profile(db: Session, profile_id: str) -> ClientProfile:
    try:
        return get_profile_or_raise(db, profile_id)
    except ProfileNotFoundError as exc:
        raise profile_not_found(exc)


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def create_profile(payload: ProfileCreateRequest, db: Session = Depends(get_db)) -> ProfileResponse:
    weight_kg = payload.weight_kg()
    height_cm = round(payload.height_cm)
    calorie_target = compute_calorie_target(
        weight_kg=weight_kg,
        height_cm=height_cm,
        age=payload.age,
        gender=payload.gender,
        realistic_workouts_per_week=payload.realistic_workouts_per_week,
        goal_type=payload.goal_type,
    )
    profile = ClientProfile(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name,
        age=payload.age,
        gender=payload.gender,
        height_cm=height_cm,
        weight_kg=weight_kg,
        goal_type=payload.goal_type,
        goal_weight_kg=payload.goal_weight_kg(),
        current_workouts_per_week=payload.current_workouts_per_week,
        realistic_workouts_per_week=payload.realistic_workouts_per_week,
        work_schedule=payload.work_schedule,
        preferred_workout_time=payload.preferred_workout_time,
        equipment=payload.equipment,
        estimated_steps=payload.estimated_steps,
        goal_why=payload.goal_why,
        past_struggles=payload.past_struggles,
        tone_notes=payload.tone_notes,
        calorie_target=calorie_target,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return _to_response(profile)


@router.get("/{profile_id}", response_model=ProfileResponse)
def read_profile(profile_id: str, db: Session = Depends(get_db)) -> ProfileResponse:
    return _to_response(_load_profile(db, profile_id))


@router.put("/{profile_id}/sms-settings", response_model=ProfileResponse)
def update_sms_settings(
    profile_id: str, payload: SmsSettingsRequest, db: Session = Depends(get_db)
) -> ProfileResponse:
    profile = _load_profile(db, profile_id)
    profile.phone_number = normalize_phone_number(payload.phone_number)
    profile.allow_sms_checkins = payload.allow_sms_checkins
    db.commit()
    db.refresh(profile)
    return _to_response(profile)


@router.get("/{profile_id}/week", response_model=WeekStatsResponse)
def read_week_stats(profile_id: str, db: Session = Depends(get_db)) -> WeekStatsResponse:
    profile = _load_profile(db, profile_id)
    today = today_local()
    week_start, _ = current_week_range(today)
    review_week = previous_week_start(week_start)
    existed_last_week = profile.created_at.date() < week_start
    review_due = existed_last_week and get_weekly_review(db, profile_id, review_week) is None
    return WeekStatsResponse(
        weekStart=week_start,
        today=today,
        adherence=load_adherence(db, profile_id, week_start, today),
        days=current_week_days(today),
        calorieTarget=profile.calorie_target,
        weeklyReviewDue=review_due,
        reviewWeekStart=review_week,
    )
