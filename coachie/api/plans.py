from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from coachie.api.errors import llm_failure, profile_not_found
from coachie.core.contracts import InitialPlanResponse
from coachie.db.session import get_db
from coachie.services.llm import LLMClient, LLMRequestError, LLMResponseError, get_llm_client
from coachie.services.plan_generation import generate_initial_plan
from coachie.services.profiles import ProfileNotFoundError

router = APIRouter(tags=["plans"])


class InitialPlanRequest(BaseModel):
    clientProfile: Optional[dict[str, Any]] = None
    callAnswers: Optional[dict[str, Any]] = None
    macroTargets: Optional[dict[str, Any]] = None
    profileId: Optional[str] = None


def _calorie_target(macro_targets: Optional[dict[str, Any]]) -> int:
    value = (macro_targets or {}).get("calorieTarget")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing or invalid macroTargets.calorieTarget",
        )
    return int(round(value))


@router.post("/initial-plan", response_model=InitialPlanResponse)
def create_initial_plan(
    payload: InitialPlanRequest,
    db: Session = Depends(get_db),
    llm_client: LLMClient = Depends(get_llm_client),
) -> InitialPlanResponse:
    if not payload.clientProfile or not payload.callAnswers:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing clientProfile or callAnswers in request body",
        )
    calorie_target = _calorie_target(payload.macroTargets)
    try:
        return generate_initial_plan(
            db,
            llm_client,
            client_profile=payload.clientProfile,
            call_answers=payload.callAnswers,
            calorie_target=calorie_target,
            profile_id=payload.profileId,
        )
    except ProfileNotFoundError as exc:
        raise profile_not_found(exc)
    except (LLMResponseError, LLMRequestError) as exc:
        db.rollback()
        raise llm_failure(exc, "initial_plan", payload.profileId)
