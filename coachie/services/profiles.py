import json
from typing import Any, Optional

from sqlalchemy.orm import Session

from coachie.db.models import ClientProfile


class ProfileNotFoundError(LookupError):
    def __init__(self, profile_id: str):
        super().__init__(f"Client profile {profile_id} not found")
        self.profile_id = profile_id


def get_profile_or_raise(db: Session, profile_id: str) -> ClientProfile:
    profile = db.query(ClientProfile).filter(ClientProfile.id == profile_id).first()
    if not profile:
        raise ProfileNotFoundError(profile_id)
    return profile


def load_json_list(raw: Optional[str]) -> Optional[list[Any]]:
    if not raw:
        return None
    try:
        loaded = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return loaded if isinstance(loaded, list) else None


def dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def profile_to_payload(profile: ClientProfile) -> dict[str, Any]:
    """Profile fields the coaching prompts are allowed to see."""
    return {
        "id": profile.id,
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "age": profile.age,
        "gender": profile.gender,
        "height_cm": profile.height_cm,
        "weight_kg": profile.weight_kg,
        "goal_type": profile.goal_type,
        "goal_weight_kg": profile.goal_weight_kg,
        "current_workouts_per_week": profile.current_workouts_per_week,
        "realistic_workouts_per_week": profile.realistic_workouts_per_week,
        "work_schedule": profile.work_schedule,
        "preferred_workout_time": profile.preferred_workout_time,
        "equipment": profile.equipment,
        "estimated_steps": profile.estimated_steps,
        "calorie_target": profile.calorie_target,
        "step_target": profile.step_target,
        "workout_split": load_json_list(profile.workout_split_json),
        "weekly_workout_schedule": load_json_list(profile.weekly_workout_schedule_json),
        "goal_why": profile.goal_why,
        "past_struggles": profile.past_struggles,
        "tone_notes": profile.tone_notes,
    }
