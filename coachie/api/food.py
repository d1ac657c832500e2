from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from coachie.api.errors import profile_not_found
from coachie.core.dates import today_local
from coachie.db.models import ClientProfile, FoodEntry
from coachie.db.session import get_db
from coachie.services.profiles import ProfileNotFoundError, get_profile_or_raise

router = APIRouter(prefix="/food-entries", tags=["food"])

VALID_MEALS = {"breakfast", "lunch", "dinner", "snack"}


class FoodEntryCreateRequest(BaseModel):
    entry_date: Optional[date] = None
    meal_type: Optional[str] = Field(default=None, max_length=32)
    description: str = Field(min_length=1, max_length=500)
    calories: int = Field(ge=0, le=10000)

    @model_validator(mode="after")
    def validate_fields(self):
        if self.meal_type:
            self.meal_type = self.meal_type.strip().lower()
            if self.meal_type not in VALID_MEALS:
                raise ValueError("meal_type must be breakfast/lunch/dinner/snack")
        self.description = self.description.strip()
        if not self.description:
            raise ValueError("description must not be blank")
        return self


class FoodEntryItem(BaseModel):
    id: str
    entry_date: date
    meal_type: Optional[str] = None
    description: str
    calories: int
    created_at: datetime


class FoodDayResponse(BaseModel):
    day: date
    entries: list[FoodEntryItem]
    calories_logged: int
    calorie_target: Optional[int] = None
    calories_remaining: Optional[int] = None


def _to_item(row: FoodEntry) -> FoodEntryItem:
    return FoodEntryItem(
        id=row.id,
        entry_date=row.entry_date,
        meal_type=row.meal_type,
        description=row.description,
        calories=row.calories,
        created_at=row.created_at,
    )


def _load_profile(db: Session, profile_id: str) -> ClientProfile:
    try:
        return get_profile_or_raise(db, profile_id)
    except ProfileNotFoundError as exc:
        raise profile_not_found(exc)


@router.post("/{profile_id}", response_model=FoodEntryItem, status_code=status.HTTP_201_CREATED)
def create_food_entry(
    profile_id: str, payload: FoodEntryCreateRequest, db: Session = Depends(get_db)
) -> FoodEntryItem:
    _load_profile(db, profile_id)
    row = FoodEntry(
        profile_id=profile_id,
        entry_date=payload.entry_date or today_local(),
        meal_type=payload.meal_type,
        description=payload.description,
        calories=payload.calories,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _to_item(row)


@router.get("/{profile_id}", response_model=FoodDayResponse)
def list_food_entries(
    profile_id: str,
    day: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
) -> FoodDayResponse:
    profile = _load_profile(db, profile_id)
    target_day = day or today_local()
    rows = (
        db.query(FoodEntry)
        .filter(FoodEntry.profile_id == profile_id, FoodEntry.entry_date == target_day)
        .order_by(FoodEntry.created_at.asc())
        .all()
    )
    logged = sum(row.calories for row in rows)
    target = profile.calorie_target
    return FoodDayResponse(
        day=target_day,
        entries=[_to_item(row) for row in rows],
        calories_logged=logged,
        calorie_target=target,
        calories_remaining=(target - logged) if target is not None else None,
    )


@router.delete("/{profile_id}/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_food_entry(profile_id: str, entry_id: str, db: Session = Depends(get_db)) -> Response:
    row = db.query(FoodEntry).filter(FoodEntry.id == entry_id, FoodEntry.profile_id == profile_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Food entry not found")
    db.delete(row)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
