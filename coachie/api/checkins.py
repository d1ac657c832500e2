from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from coachie.api.errors import profile_not_found
from coachie.core.adherence import Adherence
from coachie.core.dates import today_local
from coachie.db.models import DailyCheckin
from coachie.db.session import get_db
from coachie.services.checkin_store import list_checkins_in_range, load_adherence, upsert_checkin
from coachie.services.profiles import ProfileNotFoundError, get_profile_or_raise

router = APIRouter(prefix="/checkins", tags=["checkins"])

DEFAULT_WINDOW_DAYS = 30


class CheckinUpsertRequest(BaseModel):
    did_workout: Optional[bool] = None
    hit_calorie_goal: Optional[bool] = None
    workout_rating: Optional[int] = Field(default=None, ge=1, le=10)
    notes: Optional[str] = Field(default=None, max_length=2000)
    weight_kg: Optional[float] = Field(default=None, gt=0, le=500)


class CheckinItem(BaseModel):
    checkin_date: date
    did_workout: bool
    hit_calorie_goal: bool
    workout_rating: Optional[int] = None
    notes: Optional[str] = None
    weight_kg: Optional[float] = None
    updated_at: Optional[datetime] = None


class CheckinListResponse(BaseModel):
    items: list[CheckinItem]


def _to_item(row: DailyCheckin) -> CheckinItem:
    return CheckinItem(
        checkin_date=row.checkin_date,
        did_workout=row.did_workout,
        hit_calorie_goal=row.hit_calorie_goal,
        workout_rating=row.workout_rating,
        notes=row.notes,
        weight_kg=row.weight_kg,
        updated_at=row.updated_at,
    )


def _resolve_range(from_date: Optional[date], to_date: Optional[date]) -> tuple[date, date]:
    end = to_date or today_local()
    start = from_date or (end - timedelta(days=DEFAULT_WINDOW_DAYS - 1))
    if start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'from' must not be after 'to'")
    return start, end


def _require_profile(db: Session, profile_id: str) -> None:
    try:
        get_profile_or_raise(db, profile_id)
    except ProfileNotFoundError as exc:
        raise profile_not_found(exc)


@router.put("/{profile_id}/{checkin_date}", response_model=CheckinItem, status_code=status.HTTP_200_OK)
def put_checkin(
    payload: CheckinUpsertRequest,
    profile_id: str = Path(...),
    checkin_date: date = Path(...),
    db: Session = Depends(get_db),
) -> CheckinItem:
    _require_profile(db, profile_id)
    fields = payload.model_dump(exclude_unset=True)
    if fields.get("did_workout") is False:
        fields["workout_rating"] = None
    row = upsert_checkin(db, profile_id, checkin_date, **fields)
    return _to_item(row)


@router.get("/{profile_id}", response_model=CheckinListResponse)
def list_checkins(
    profile_id: str,
    from_date: Optional[date] = Query(default=None, alias="from"),
    to_date: Optional[date] = Query(default=None, alias="to"),
    db: Session = Depends(get_db),
) -> CheckinListResponse:
    _require_profile(db, profile_id)
    start, end = _resolve_range(from_date, to_date)
    rows = list_checkins_in_range(db, profile_id, start, end)
    return CheckinListResponse(items=[_to_item(row) for row in reversed(rows)])


@router.get("/{profile_id}/adherence", response_model=Adherence)
def read_adherence(
    profile_id: str,
    from_date: Optional[date] = Query(default=None, alias="from"),
    to_date: Optional[date] = Query(default=None, alias="to"),
    db: Session = Depends(get_db),
) -> Adherence:
    _require_profile(db, profile_id)
    start, end = _resolve_range(from_date, to_date)
    return load_adherence(db, profile_id, start, end)
