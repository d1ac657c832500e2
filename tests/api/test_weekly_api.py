import json
from datetime import date, timedelta

from conftest import FakeScenario
from coachie.db.models import ClientProfile, WeeklyReview
from coachie.services.checkin_store import upsert_checkin
from coachie.services.profiles import dump_json

WEEK_START = date(2024, 4, 1)


def _review_payload(profile_id: str, week_start: date = WEEK_START) -> dict:
    return {
        "profileId": profile_id,
        "weekStart": week_start.isoformat(),
        "form": {"weight_lbs": 198.4, "effort": 8, "wentWell": "Meal prep", "gotInTheWay": "Late meetings"},
    }


def _seed_week(db_session, profile_id: str) -> None:
    upsert_checkin(db_session, profile_id, WEEK_START, did_workout=True, hit_calorie_goal=True, workout_rating=8)
    upsert_checkin(db_session, profile_id, WEEK_START + timedelta(days=1), did_workout=True, workout_rating=7)
    upsert_checkin(db_session, profile_id, WEEK_START + timedelta(days=2), hit_calorie_goal=True)
    upsert_checkin(db_session, profile_id, WEEK_START + timedelta(days=3), did_workout=True, workout_rating=9)
    upsert_checkin(db_session, profile_id, WEEK_START + timedelta(days=4))
    # Outside the reviewed week.
    upsert_checkin(db_session, profile_id, WEEK_START + timedelta(days=7), did_workout=True, workout_rating=1)


def test_review_lowers_target_and_overrides_adherence(client, db_session, create_profile, override_llm) -> None:
    schedule = [{"dayOfWeek": "Monday", "workoutName": "Full Body A", "exercises": []}]
    profile = create_profile(calorie_target=1450, weekly_workout_schedule_json=dump_json(schedule))
    _seed_week(db_session, profile.id)
    fake = override_llm(FakeScenario.REVIEW_LOWER)

    response = client.post("/weekly-review", json=_review_payload(profile.id))

    assert response.status_code == 200
    body = response.json()
    assert body["updatedCalorieTarget"] == 1300
    assert body["updatedWorkoutSchedule"] == schedule
    assert body["analysis"]["adherence"] == {
        "totalDays": 5,
        "daysWorkedOut": 3,
        "daysHitCalories": 2,
        "avgWorkoutRating": 8.0,
    }
    assert body["analysis"]["calorieAdjustment"]["recommendation"] == "lower_slightly"
    assert len(fake.calls[0]["user_content"]["checkins"]) == 5
    assert fake.calls[0]["user_content"]["weeklyReview"]["effort"] == 8

    db_session.expire_all()
    assert db_session.get(ClientProfile, profile.id).calorie_target == 1300
    stored = (
        db_session.query(WeeklyReview)
        .filter(WeeklyReview.profile_id == profile.id, WeeklyReview.week_start == WEEK_START)
        .one()
    )
    assert stored.new_calorie_target == 1300
    assert stored.weight_lbs == 198.4
    assert json.loads(stored.analysis_json)["summary"].startswith("Great consistency")


def test_review_lowering_stops_at_floor(client, create_profile, override_llm) -> None:
    profile = create_profile(calorie_target=1300)
    override_llm(FakeScenario.REVIEW_LOWER)
    response = client.post("/weekly-review", json=_review_payload(profile.id))
    assert response.status_code == 200
    assert response.json()["updatedCalorieTarget"] == 1200


def test_review_keep_and_raise(client, create_profile, override_llm) -> None:
    keep_profile = create_profile(calorie_target=2000)
    override_llm(FakeScenario.REVIEW_KEEP)
    keep = client.post("/weekly-review", json=_review_payload(keep_profile.id))
    assert keep.json()["updatedCalorieTarget"] == 2000

    raise_profile = create_profile(calorie_target=2000)
    override_llm(FakeScenario.REVIEW_RAISE)
    raised = client.post("/weekly-review", json=_review_payload(raise_profile.id))
    assert raised.json()["updatedCalorieTarget"] == 2150


def test_review_without_current_target_leaves_it_unset(client, db_session, create_profile, override_llm) -> None:
    profile = create_profile(calorie_target=None)
    override_llm(FakeScenario.REVIEW_LOWER)
    response = client.post("/weekly-review", json=_review_payload(profile.id))
    assert response.status_code == 200
    assert response.json()["updatedCalorieTarget"] is None
    db_session.expire_all()
    assert db_session.get(ClientProfile, profile.id).calorie_target is None


def test_duplicate_review_is_rejected_without_model_call(client, db_session, create_profile, override_llm) -> None:
    profile = create_profile(calorie_target=1450)
    override_llm(FakeScenario.REVIEW_LOWER)
    first = client.post("/weekly-review", json=_review_payload(profile.id))
    assert first.status_code == 200

    fake = override_llm(FakeScenario.REVIEW_LOWER)
    second = client.post("/weekly-review", json=_review_payload(profile.id))
    assert second.status_code == 409
    assert fake.calls == []
    db_session.expire_all()
    assert db_session.get(ClientProfile, profile.id).calorie_target == 1300


def test_review_malformed_output_changes_nothing(client, db_session, create_profile, override_llm) -> None:
    profile = create_profile(calorie_target=1800)
    override_llm(FakeScenario.MALFORMED_JSON)

    response = client.post("/weekly-review", json=_review_payload(profile.id))

    assert response.status_code == 500
    assert "raw" in response.json()["detail"]
    db_session.expire_all()
    assert db_session.get(ClientProfile, profile.id).calorie_target == 1800
    assert db_session.query(WeeklyReview).filter(WeeklyReview.profile_id == profile.id).count() == 0


def test_review_validation(client, create_profile, override_llm) -> None:
    profile = create_profile()
    fake = override_llm(FakeScenario.REVIEW_KEEP)

    missing_form = client.post("/weekly-review", json={"profileId": profile.id, "weekStart": "2024-04-01"})
    assert missing_form.status_code == 400

    not_monday = client.post("/weekly-review", json=_review_payload(profile.id, date(2024, 4, 3)))
    assert not_monday.status_code == 400

    bad_effort = _review_payload(profile.id)
    bad_effort["form"]["effort"] = 11
    assert client.post("/weekly-review", json=bad_effort).status_code == 422

    unknown = client.post("/weekly-review", json=_review_payload("missing-profile"))
    assert unknown.status_code == 404
    assert fake.calls == []


def test_read_stored_review(client, create_profile, override_llm) -> None:
    profile = create_profile(calorie_target=2000)
    override_llm(FakeScenario.REVIEW_KEEP)
    client.post("/weekly-review", json=_review_payload(profile.id))

    response = client.get(f"/weekly-review/{profile.id}/{WEEK_START.isoformat()}")
    assert response.status_code == 200
    body = response.json()
    assert body["effort"] == 8
    assert body["wentWell"] == "Meal prep"
    assert body["newCalorieTarget"] == 2000
    assert body["analysis"]["calorieAdjustment"]["recommendation"] == "keep"

    missing = client.get(f"/weekly-review/{profile.id}/2024-04-08")
    assert missing.status_code == 404


def test_summary_overrides_model_adherence(client, db_session, create_profile, override_llm) -> None:
    profile = create_profile()
    _seed_week(db_session, profile.id)
    fake = override_llm(FakeScenario.OK_SUMMARY)

    response = client.post("/weekly-summary", json={"profileId": profile.id})

    assert response.status_code == 200
    body = response.json()
    assert body["adherence"] == {
        "totalDays": 6,
        "daysWorkedOut": 4,
        "daysHitCalories": 2,
        "avgWorkoutRating": 6.25,
    }
    assert body["calorieAdjustment"]["recommendation"] == "keep"
    sent_checkins = fake.calls[0]["user_content"]["dailyCheckins"]
    assert sent_checkins[0]["checkin_date"] == (WEEK_START + timedelta(days=7)).isoformat()


def test_summary_does_not_change_calorie_target(client, db_session, create_profile, override_llm) -> None:
    profile = create_profile(calorie_target=2100)
    override_llm(FakeScenario.OK_SUMMARY)
    assert client.post("/weekly-summary", json={"profileId": profile.id}).status_code == 200
    db_session.expire_all()
    assert db_session.get(ClientProfile, profile.id).calorie_target == 2100


def test_summary_errors(client, override_llm) -> None:
    override_llm(FakeScenario.MALFORMED_JSON)
    assert client.post("/weekly-summary", json={}).status_code == 400
    assert client.post("/weekly-summary", json={"profileId": "missing-profile"}).status_code == 404


def test_review_provider_failure_is_502_and_changes_nothing(
    client, db_session, create_profile, override_llm
) -> None:
    profile = create_profile(calorie_target=1800)
    override_llm(FakeScenario.PROVIDER_ERROR)

    response = client.post("/weekly-review", json=_review_payload(profile.id))

    assert response.status_code == 502
    assert response.json()["detail"] == {"error": "AI provider request failed"}
    db_session.expire_all()
    assert db_session.get(ClientProfile, profile.id).calorie_target == 1800
    assert db_session.query(WeeklyReview).filter(WeeklyReview.profile_id == profile.id).count() == 0


def test_summary_provider_failure_is_502(client, create_profile, override_llm) -> None:
    profile = create_profile()
    override_llm(FakeScenario.PROVIDER_ERROR)
    response = client.post("/weekly-summary", json={"profileId": profile.id})
    assert response.status_code == 502
