import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional
from uuid import uuid4

# The engine is built at import time; keep it off the production path.
os.environ.setdefault("DB_PATH", str(Path(tempfile.mkdtemp(prefix="coachie_import_")) / "coachie.db"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from coachie.db.models import ClientProfile
from coachie.db.session import SessionLocal, configure_database, create_tables
from coachie.services.llm import LLMRequestError, get_llm_client
from coachie.services.sms import SmsSendError, get_sms_sender


class FakeScenario(str, Enum):
    OK_PLAN = "OK_PLAN"
    OK_SUMMARY = "OK_SUMMARY"
    REVIEW_KEEP = "REVIEW_KEEP"
    REVIEW_LOWER = "REVIEW_LOWER"
    REVIEW_RAISE = "REVIEW_RAISE"
    MALFORMED_JSON = "MALFORMED_JSON"
    MISSING_FIELDS = "MISSING_FIELDS"
    EMPTY = "EMPTY"
    PROVIDER_ERROR = "PROVIDER_ERROR"


class FakeLLMClient:
    def __init__(self, scenario: FakeScenario, fixture_dir: Path) -> None:
        self.scenario = scenario
        self.fixture_dir = fixture_dir
        self.calls: list[dict[str, Any]] = []

    def _load(self, name: str) -> str:
        return (self.fixture_dir / name).read_text(encoding="utf-8")

    def generate_json(self, system_prompt: str, user_content: dict[str, Any], task_type: str = "reasoning") -> str:
        self.calls.append({"system_prompt": system_prompt, "user_content": user_content, "task_type": task_type})
        if self.scenario == FakeScenario.OK_PLAN:
            return self._load("OK_PLAN.json")
        if self.scenario == FakeScenario.OK_SUMMARY:
            return self._load("OK_SUMMARY.json")
        if self.scenario == FakeScenario.REVIEW_KEEP:
            return self._load("REVIEW_KEEP.json")
        if self.scenario == FakeScenario.REVIEW_LOWER:
            return self._load("REVIEW_LOWER.json")
        if self.scenario == FakeScenario.REVIEW_RAISE:
            return self._load("REVIEW_RAISE.json")
        if self.scenario == FakeScenario.MALFORMED_JSON:
            return self._load("MALFORMED_JSON.txt")
        if self.scenario == FakeScenario.MISSING_FIELDS:
            return self._load("MISSING_FIELDS.json")
        if self.scenario == FakeScenario.EMPTY:
            return ""
        if self.scenario == FakeScenario.PROVIDER_ERROR:
            raise LLMRequestError(provider="openai", model="gpt-4o-mini", message="simulated outage", status_code=503)
        raise ValueError("Unknown fake scenario")


class RecordingSmsSender:
    def __init__(self, fail_for: Optional[set[str]] = None) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail_for = fail_for or set()

    def send(self, to: str, body: str) -> None:
        if to in self.fail_for:
            raise SmsSendError(f"simulated failure for {to}")
        self.sent.append((to, body))

    def bodies_to(self, to: str) -> list[str]:
        return [body for number, body in self.sent if number == to]


@pytest.fixture(scope="session")
def fixture_dir() -> Path:
    return Path(__file__).resolve().parent / "fixtures" / "llm"


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    db_path = tmp_path_factory.mktemp("db") / "coachie_test.db"
    configure_database(str(db_path))
    create_tables()
    return db_path


@pytest.fixture(scope="session")
def app(test_db_path: Path):
    from coachie.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
def client(app):
    app.dependency_overrides = {}
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


@pytest.fixture
def db_session(test_db_path: Path):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def create_profile(db_session: Session) -> Callable[..., ClientProfile]:
    def _create_profile(**overrides: Any) -> ClientProfile:
        fields: dict[str, Any] = {
            "first_name": "Sam",
            "last_name": "Rivera",
            "age": 34,
            "gender": "male",
            "height_cm": 180,
            "weight_kg": 90.0,
            "goal_type": "lose_weight",
            "goal_weight_kg": 82.0,
            "realistic_workouts_per_week": 3,
            "equipment": "commercial_gym",
            "calorie_target": 2200,
        }
        fields.update(overrides)
        profile = ClientProfile(**fields)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _create_profile


@pytest.fixture
def unique_phone() -> Callable[[], str]:
    def _next() -> str:
        return f"+1555{uuid4().int % 10**7:07d}"

    return _next


@pytest.fixture
def fake_llm_factory(fixture_dir: Path) -> Callable[[FakeScenario], FakeLLMClient]:
    def _factory(scenario: FakeScenario) -> FakeLLMClient:
        return FakeLLMClient(scenario=scenario, fixture_dir=fixture_dir)

    return _factory


@pytest.fixture
def override_llm(app, fake_llm_factory):
    def _override(scenario: FakeScenario) -> FakeLLMClient:
        fake = fake_llm_factory(scenario)
        app.dependency_overrides[get_llm_client] = lambda: fake
        return fake

    return _override


@pytest.fixture
def override_sms(app):
    def _override(sender: Optional[RecordingSmsSender] = None) -> RecordingSmsSender:
        recorder = sender or RecordingSmsSender()
        app.dependency_overrides[get_sms_sender] = lambda: recorder
        return recorder

    return _override
