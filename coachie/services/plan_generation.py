import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from coachie.core.contracts import INITIAL_PLAN_SYSTEM_PROMPT, InitialPlanResponse
from coachie.db.models import ClientProfile
from coachie.services.llm import LLMClient, request_structured
from coachie.services.profiles import dump_json, get_profile_or_raise

logger = logging.getLogger("uvicorn.error")


def _apply_plan(profile: ClientProfile, plan: InitialPlanResponse) -> None:
    profile.calorie_target = plan.calorieTarget
    profile.step_target = plan.stepTarget
    profile.workout_split_json = dump_json(plan.workoutSplit)
    profile.weekly_workout_schedule_json = dump_json(
        [session.model_dump(exclude_none=True) for session in plan.weeklyWorkoutSchedule]
    )
    profile.goal_why = plan.goalWhy
    profile.past_struggles = plan.pastStruggles
    profile.tone_notes = plan.toneNotes


def generate_initial_plan(
    db: Session,
    llm: LLMClient,
    client_profile: dict[str, Any],
    call_answers: dict[str, Any],
    calorie_target: int,
    profile_id: Optional[str] = None,
) -> InitialPlanResponse:
    # Resolve the profile first so an unknown id fails before the model is called.
    profile = get_profile_or_raise(db, profile_id) if profile_id else None
    user_content = {
        "clientProfile": client_profile,
        "callAnswers": call_answers,
        "macroTargets": {"calorieTarget": calorie_target},
    }
    plan = request_structured(
        llm,
        INITIAL_PLAN_SYSTEM_PROMPT,
        user_content,
        InitialPlanResponse,
        overrides={"calorieTarget": calorie_target},
    )
    if profile is not None:
        _apply_plan(profile, plan)
        db.commit()
        logger.info(
            "initial_plan_saved profile_id=%s calorie_target=%s sessions=%s",
            profile.id,
            plan.calorieTarget,
            len(plan.weeklyWorkoutSchedule),
        )
    return plan
