import json
import os
from typing import Any, Optional, Protocol, Tuple, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_CONNECT_TIMEOUT_SECONDS = float(os.getenv("LLM_CONNECT_TIMEOUT_SECONDS", "10"))
LLM_WRITE_TIMEOUT_SECONDS = float(os.getenv("LLM_WRITE_TIMEOUT_SECONDS", "30"))
LLM_POOL_TIMEOUT_SECONDS = float(os.getenv("LLM_POOL_TIMEOUT_SECONDS", "60"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.6"))
LLM_MAX_TOKENS_UTILITY = int(os.getenv("LLM_MAX_TOKENS_UTILITY", "900"))
LLM_MAX_TOKENS_REASONING = int(os.getenv("LLM_MAX_TOKENS_REASONING", "2400"))

UTILITY_TASK_TYPES = {
    "utility",
    "summarization",
}

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _http_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=LLM_CONNECT_TIMEOUT_SECONDS,
        read=LLM_TIMEOUT_SECONDS,
        write=LLM_WRITE_TIMEOUT_SECONDS,
        pool=LLM_POOL_TIMEOUT_SECONDS,
    )


def _max_output_tokens(task_type: str) -> int:
    normalized = (task_type or "").strip().lower()
    if normalized in UTILITY_TASK_TYPES:
        return LLM_MAX_TOKENS_UTILITY
    return LLM_MAX_TOKENS_REASONING


class LLMRequestError(RuntimeError):
    def __init__(self, provider: str, model: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code


class LLMResponseError(RuntimeError):
    """The model answered, but not with JSON the caller can accept."""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


def parse_llm_json(raw_text: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw_text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    # Tolerate prose or code fences around a single JSON object.
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            parsed = json.loads(raw_text[start : end + 1])
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
    raise ValueError("Invalid JSON response from LLM")


def resolve_model_config(task_type: str = "reasoning") -> Tuple[str, str, str]:
    provider = os.getenv("DEFAULT_AI_PROVIDER", "openai").strip().lower()
    reasoning_model = os.getenv("DEFAULT_AI_MODEL", "").strip() or (
        "gpt-4o-mini" if provider == "openai" else "gemini-2.0-flash"
    )
    utility_model = os.getenv("DEFAULT_UTILITY_MODEL", "").strip() or reasoning_model
    if provider == "openai":
        key = os.getenv("OPENAI_API_KEY", "")
    elif provider == "gemini":
        key = os.getenv("GEMINI_API_KEY", "")
    else:
        raise ValueError("Unsupported AI provider")
    if not key:
        raise ValueError("AI config missing")
    model = utility_model if (task_type or "").strip().lower() in UTILITY_TASK_TYPES else reasoning_model
    return provider, model, key


def _user_message(user_content: dict[str, Any]) -> str:
    return "Here is the client data as JSON:\n\n" + json.dumps(user_content, indent=2, default=str)


def _openai_request(model: str, api_key: str, system_prompt: str, user_text: str, max_output_tokens: int) -> str:
    payload = {
        "model": model,
        "response_format": {"type": "json_object"},
        "temperature": LLM_TEMPERATURE,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_text},
        ],
        "max_completion_tokens": max_output_tokens,
    }
    try:
        response = httpx.post(
            "https://api.openai.com/v1/chat/completions",
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            json=payload,
            timeout=_http_timeout(),
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code if exc.response is not None else None
        detail = (exc.response.text or "").strip()[:220] if exc.response is not None else ""
        raise LLMRequestError(
            provider="openai",
            model=model,
            status_code=status,
            message=f"OpenAI request failed (status={status}): {detail or 'no response body'}",
        ) from exc
    except httpx.HTTPError as exc:
        raise LLMRequestError(
            provider="openai", model=model, message=f"OpenAI request failed: {str(exc)[:220]}"
        ) from exc
    try:
        data = response.json()
    except ValueError as exc:
        raise LLMRequestError(
            provider="openai", model=model, status_code=response.status_code, message="OpenAI returned a non-JSON body"
        ) from exc
    try:
        return str(data["choices"][0]["message"].get("content") or "").strip()
    except (KeyError, IndexError, TypeError):
        return ""


def _gemini_request(model: str, api_key: str, system_prompt: str, user_text: str, max_output_tokens: int) -> str:
    url = f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={api_key}"
    try:
        response = httpx.post(
            url,
            headers={"Content-Type": "application/json"},
            json={
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "generationConfig": {
                    "responseMimeType": "application/json",
                    "temperature": LLM_TEMPERATURE,
                    "maxOutputTokens": max_output_tokens,
                },
                "contents": [{"role": "user", "parts": [{"text": user_text}]}],
            },
            timeout=_http_timeout(),
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code if exc.response is not None else None
        detail = (exc.response.text or "").strip()[:220] if exc.response is not None else ""
        raise LLMRequestError(
            provider="gemini",
            model=model,
            status_code=status,
            message=f"Gemini request failed (status={status}): {detail or 'no response body'}",
        ) from exc
    except httpx.HTTPError as exc:
        raise LLMRequestError(
            provider="gemini", model=model, message=f"Gemini request failed: {str(exc)[:220]}"
        ) from exc
    try:
        data = response.json()
    except ValueError as exc:
        raise LLMRequestError(
            provider="gemini", model=model, status_code=response.status_code, message="Gemini returned a non-JSON body"
        ) from exc
    try:
        return str(data["candidates"][0]["content"]["parts"][0]["text"]).strip()
    except (KeyError, IndexError, TypeError):
        return ""


class LLMClient(Protocol):
    def generate_json(self, system_prompt: str, user_content: dict[str, Any], task_type: str = "reasoning") -> str:
        ...


class RealLLMClient:
    def generate_json(self, system_prompt: str, user_content: dict[str, Any], task_type: str = "reasoning") -> str:
        try:
            provider, model, api_key = resolve_model_config(task_type)
        except ValueError as exc:
            raise LLMRequestError(provider="unconfigured", model="", message=str(exc)) from exc
        user_text = _user_message(user_content)
        max_output_tokens = _max_output_tokens(task_type)
        if provider == "openai":
            return _openai_request(model, api_key, system_prompt, user_text, max_output_tokens)
        return _gemini_request(model, api_key, system_prompt, user_text, max_output_tokens)


def request_structured(
    llm: LLMClient,
    system_prompt: str,
    user_content: dict[str, Any],
    schema: type[SchemaT],
    overrides: Optional[dict[str, Any]] = None,
    task_type: str = "reasoning",
) -> SchemaT:
    """Call the model once and validate its JSON against ``schema``.

    ``overrides`` are written over the parsed payload before validation, so
    backend-owned values always win. Never retried.
    """
    raw = llm.generate_json(system_prompt, user_content, task_type=task_type)
    if not raw or not raw.strip():
        raise LLMResponseError("No content returned from LLM", raw=raw or "")
    try:
        parsed = parse_llm_json(raw)
    except ValueError as exc:
        raise LLMResponseError("Failed to parse LLM JSON", raw=raw) from exc
    if overrides:
        parsed.update(overrides)
    try:
        return schema.model_validate(parsed)
    except ValidationError as exc:
        raise LLMResponseError(f"LLM JSON did not match {schema.__name__}: {exc.error_count()} error(s)", raw=raw) from exc


def get_llm_client() -> LLMClient:
    return RealLLMClient()
