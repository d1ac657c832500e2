import logging

from fastapi import HTTPException, status

from coachie.services.llm import LLMRequestError, LLMResponseError
from coachie.services.profiles import ProfileNotFoundError

logger = logging.getLogger("uvicorn.error")


def profile_not_found(exc: ProfileNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def llm_failure(exc: Exception, route: str, profile_id: object = None) -> HTTPException:
    if isinstance(exc, LLMResponseError):
        logger.error("%s_llm_response_error profile_id=%s detail=%s raw=%r", route, profile_id, exc, exc.raw[:500])
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": str(exc), "raw": exc.raw},
        )
    if isinstance(exc, LLMRequestError):
        logger.error(
            "%s_llm_request_error profile_id=%s provider=%s model=%s status=%s detail=%s",
            route,
            profile_id,
            exc.provider,
            exc.model,
            exc.status_code,
            exc,
        )
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "AI provider request failed"},
        )
    raise TypeError(f"Unsupported LLM failure type: {type(exc).__name__}")
