from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from coachie.core.adherence import Adherence, compute_adherence
from coachie.db.models import DailyCheckin

_UNSET = object()


def get_checkin(db: Session, profile_id: str, checkin_date: date) -> Optional[DailyCheckin]:
    return (
        db.query(DailyCheckin)
        .filter(DailyCheckin.profile_id == profile_id, DailyCheckin.checkin_date == checkin_date)
        .first()
    )


def has_checkin(db: Session, profile_id: str, checkin_date: date) -> bool:
    return get_checkin(db, profile_id, checkin_date) is not None


def upsert_checkin(
    db: Session,
    profile_id: str,
    checkin_date: date,
    *,
    did_workout=_UNSET,
    hit_calorie_goal=_UNSET,
    workout_rating=_UNSET,
    notes=_UNSET,
    weight_kg=_UNSET,
    commit: bool = True,
) -> DailyCheckin:
    """Insert or update the single row for (profile, date).

    Only the fields passed are written; booleans default to False on insert.
    """
    row = get_checkin(db, profile_id, checkin_date)
    if not row:
        row = DailyCheckin(
            profile_id=profile_id,
            checkin_date=checkin_date,
            did_workout=False,
            hit_calorie_goal=False,
        )
        db.add(row)
    if did_workout is not _UNSET:
        row.did_workout = bool(did_workout)
    if hit_calorie_goal is not _UNSET:
        row.hit_calorie_goal = bool(hit_calorie_goal)
    if workout_rating is not _UNSET:
        row.workout_rating = workout_rating
    if notes is not _UNSET:
        row.notes = notes
    if weight_kg is not _UNSET:
        row.weight_kg = weight_kg
    if commit:
        db.commit()
        db.refresh(row)
    else:
        db.flush()
    return row


def list_checkins_in_range(db: Session, profile_id: str, start: date, end: date) -> list[DailyCheckin]:
    return (
        db.query(DailyCheckin)
        .filter(
            DailyCheckin.profile_id == profile_id,
            DailyCheckin.checkin_date >= start,
            DailyCheckin.checkin_date <= end,
        )
        .order_by(DailyCheckin.checkin_date.asc())
        .all()
    )


def list_recent_checkins(db: Session, profile_id: str, limit: int = 14) -> list[DailyCheckin]:
    return (
        db.query(DailyCheckin)
        .filter(DailyCheckin.profile_id == profile_id)
        .order_by(DailyCheckin.checkin_date.desc())
        .limit(limit)
        .all()
    )


def load_adherence(db: Session, profile_id: str, start: date, end: date) -> Adherence:
    return compute_adherence(list_checkins_in_range(db, profile_id, start, end))


def checkin_to_dict(row: DailyCheckin) -> dict[str, object]:
    return {
        "checkin_date": row.checkin_date.isoformat(),
        "did_workout": row.did_workout,
        "hit_calorie_goal": row.hit_calorie_goal,
        "workout_rating": row.workout_rating,
        "notes": row.notes,
        "weight_kg": row.weight_kg,
    }
