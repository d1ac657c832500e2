from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()


def _new_id() -> str:
    return str(uuid4())


class SmsStep(str, Enum):
    ask_did_workout = "ask_did_workout"
    ask_hit_calories = "ask_hit_calories"
    ask_rating = "ask_rating"
    ask_notes = "ask_notes"
    complete = "complete"


class ClientProfile(Base):
    __tablename__ = "client_profiles"
    __table_args__ = (Index("ix_client_profiles_phone_sms", "phone_number", "allow_sms_checkins"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[str] = mapped_column(String(16), nullable=False)
    height_cm: Mapped[float] = mapped_column(Float, nullable=False)
    weight_kg: Mapped[float] = mapped_column(Float, nullable=False)
    goal_type: Mapped[str] = mapped_column(String(32), nullable=False)
    goal_weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    current_workouts_per_week: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    realistic_workouts_per_week: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    work_schedule: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    preferred_workout_time: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    equipment: Mapped[str] = mapped_column(String(32), nullable=False, default="commercial_gym")
    estimated_steps: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    calorie_target: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    step_target: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    workout_split_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    weekly_workout_schedule_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    goal_why: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    past_struggles: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tone_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    allow_sms_checkins: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    checkins: Mapped[list["DailyCheckin"]] = relationship(
        "DailyCheckin", back_populates="profile", cascade="all, delete-orphan"
    )
    weekly_reviews: Mapped[list["WeeklyReview"]] = relationship(
        "WeeklyReview", back_populates="profile", cascade="all, delete-orphan"
    )


class DailyCheckin(Base):
    __tablename__ = "daily_checkins"
    __table_args__ = (
        UniqueConstraint("profile_id", "checkin_date", name="uq_daily_checkins_profile_date"),
        Index("ix_daily_checkins_profile_date", "profile_id", "checkin_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    profile_id: Mapped[str] = mapped_column(ForeignKey("client_profiles.id"), nullable=False, index=True)
    checkin_date: Mapped[date] = mapped_column(Date, nullable=False)
    did_workout: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hit_calorie_goal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    workout_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    profile: Mapped[ClientProfile] = relationship("ClientProfile", back_populates="checkins")


class SmsCheckinSession(Base):
    __tablename__ = "sms_checkin_sessions"
    __table_args__ = (
        UniqueConstraint("profile_id", "checkin_date", name="uq_sms_sessions_profile_date"),
        Index("ix_sms_sessions_phone_date", "phone_number", "checkin_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    profile_id: Mapped[str] = mapped_column(ForeignKey("client_profiles.id"), nullable=False, index=True)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    checkin_date: Mapped[date] = mapped_column(Date, nullable=False)
    step: Mapped[SmsStep] = mapped_column(
        SAEnum(
            SmsStep,
            name="sms_step",
            native_enum=False,
            length=32,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
        default=SmsStep.ask_did_workout,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class WeeklyReview(Base):
    __tablename__ = "weekly_reviews"
    __table_args__ = (UniqueConstraint("profile_id", "week_start", name="uq_weekly_reviews_profile_week"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    profile_id: Mapped[str] = mapped_column(ForeignKey("client_profiles.id"), nullable=False, index=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    weight_lbs: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    effort: Mapped[int] = mapped_column(Integer, nullable=False)
    went_well: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    got_in_the_way: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    analysis_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    new_calorie_target: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    profile: Mapped[ClientProfile] = relationship("ClientProfile", back_populates="weekly_reviews")


class FoodEntry(Base):
    __tablename__ = "food_entries"
    __table_args__ = (Index("ix_food_entries_profile_date", "profile_id", "entry_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    profile_id: Mapped[str] = mapped_column(ForeignKey("client_profiles.id"), nullable=False, index=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    meal_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    calories: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
