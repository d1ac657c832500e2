from conftest import RecordingSmsSender
from coachie.core.dates import today_local
from coachie.services.checkin_store import get_checkin, upsert_checkin
from coachie.services.sms_checkin import (
    ALREADY_COMPLETE_MESSAGE,
    CONFIRMATION_MESSAGE,
    INVALID_REPLIES,
    NO_SESSION_MESSAGE,
    QUESTIONS,
)
from coachie.db.models import SmsStep


def _reply(client, phone: str, body: str) -> None:
    response = client.post("/sms/webhook", data={"From": phone, "Body": body})
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def _start(client, override_sms, create_profile, unique_phone):
    phone = unique_phone()
    profile = create_profile(phone_number=phone, allow_sms_checkins=True)
    recorder = override_sms()
    response = client.post("/sms/checkin-cron")
    assert response.status_code == 200
    return profile, phone, recorder


def test_cron_opens_session_and_sends_opening_message(client, override_sms, create_profile, unique_phone) -> None:
    profile, phone, recorder = _start(client, override_sms, create_profile, unique_phone)
    bodies = recorder.bodies_to(phone)
    assert len(bodies) == 1
    assert bodies[0].startswith(f"Hey {profile.first_name}")
    assert "Did you work out?" in bodies[0]


def test_cron_summary_counts(client, override_sms, create_profile, unique_phone) -> None:
    phone = unique_phone()
    create_profile(phone_number=phone, allow_sms_checkins=True)
    override_sms()
    body = client.post("/sms/checkin-cron").json()
    assert body["ok"] is True
    assert body["sent"] >= 1
    assert set(body) == {"ok", "sent", "skipped", "failed"}


def test_cron_skips_profiles_already_checked_in(
    client, db_session, override_sms, create_profile, unique_phone
) -> None:
    phone = unique_phone()
    profile = create_profile(phone_number=phone, allow_sms_checkins=True)
    upsert_checkin(db_session, profile.id, today_local(), did_workout=True)
    recorder = override_sms()
    response = client.post("/sms/checkin-cron")
    assert response.status_code == 200
    assert response.json()["skipped"] >= 1
    assert recorder.bodies_to(phone) == []


def test_cron_ignores_opted_out_profiles(client, override_sms, create_profile, unique_phone) -> None:
    phone = unique_phone()
    create_profile(phone_number=phone, allow_sms_checkins=False)
    recorder = override_sms()
    client.post("/sms/checkin-cron")
    assert recorder.bodies_to(phone) == []


def test_cron_counts_send_failures(client, override_sms, create_profile, unique_phone) -> None:
    phone = unique_phone()
    create_profile(phone_number=phone, allow_sms_checkins=True)
    override_sms(RecordingSmsSender(fail_for={phone}))
    body = client.post("/sms/checkin-cron").json()
    assert body["failed"] >= 1


def test_full_conversation_with_workout(client, db_session, override_sms, create_profile, unique_phone) -> None:
    profile, phone, recorder = _start(client, override_sms, create_profile, unique_phone)

    _reply(client, phone, "yes")
    _reply(client, phone, "YES")
    _reply(client, phone, "8")
    _reply(client, phone, "felt great")

    bodies = recorder.bodies_to(phone)
    assert bodies[1:] == [
        QUESTIONS[SmsStep.ask_hit_calories],
        QUESTIONS[SmsStep.ask_rating],
        QUESTIONS[SmsStep.ask_notes],
        CONFIRMATION_MESSAGE,
    ]
    db_session.expire_all()
    checkin = get_checkin(db_session, profile.id, today_local())
    assert checkin.did_workout is True
    assert checkin.hit_calorie_goal is True
    assert checkin.workout_rating == 8
    assert checkin.notes == "[SMS] felt great"


def test_conversation_without_workout_skips_rating(
    client, db_session, override_sms, create_profile, unique_phone
) -> None:
    profile, phone, recorder = _start(client, override_sms, create_profile, unique_phone)

    _reply(client, phone, "no")
    _reply(client, phone, "n")
    _reply(client, phone, "skip")

    bodies = recorder.bodies_to(phone)
    assert QUESTIONS[SmsStep.ask_rating] not in bodies
    assert bodies[-1] == CONFIRMATION_MESSAGE
    db_session.expire_all()
    checkin = get_checkin(db_session, profile.id, today_local())
    assert checkin.did_workout is False
    assert checkin.hit_calorie_goal is False
    assert checkin.workout_rating is None
    assert checkin.notes is None


def test_invalid_answer_reprompts_without_advancing(
    client, db_session, override_sms, create_profile, unique_phone
) -> None:
    profile, phone, recorder = _start(client, override_sms, create_profile, unique_phone)

    _reply(client, phone, "maybe")
    _reply(client, phone, "yes")
    _reply(client, phone, "definitely")

    bodies = recorder.bodies_to(phone)
    assert bodies[1] == INVALID_REPLIES[SmsStep.ask_did_workout]
    assert bodies[2] == QUESTIONS[SmsStep.ask_hit_calories]
    assert bodies[3] == INVALID_REPLIES[SmsStep.ask_hit_calories]
    db_session.expire_all()
    checkin = get_checkin(db_session, profile.id, today_local())
    assert checkin.did_workout is True
    assert checkin.hit_calorie_goal is False


def test_out_of_range_rating_reprompts(client, override_sms, create_profile, unique_phone) -> None:
    _, phone, recorder = _start(client, override_sms, create_profile, unique_phone)
    for body in ["yes", "yes", "11"]:
        _reply(client, phone, body)
    assert recorder.bodies_to(phone)[-1] == INVALID_REPLIES[SmsStep.ask_rating]


def test_single_message_checkin_completes_session(
    client, db_session, override_sms, create_profile, unique_phone
) -> None:
    profile, phone, recorder = _start(client, override_sms, create_profile, unique_phone)

    _reply(client, phone, "Y N 7 felt tired")
    _reply(client, phone, "yes")

    bodies = recorder.bodies_to(phone)
    assert "Workout logged" in bodies[1]
    assert "Rating: 7/10" in bodies[1]
    assert bodies[2] == ALREADY_COMPLETE_MESSAGE
    db_session.expire_all()
    checkin = get_checkin(db_session, profile.id, today_local())
    assert checkin.did_workout is True
    assert checkin.hit_calorie_goal is False
    assert checkin.workout_rating == 7
    assert checkin.notes == "[SMS] felt tired"


def test_single_message_key_value_format(client, db_session, override_sms, create_profile, unique_phone) -> None:
    profile, phone, _ = _start(client, override_sms, create_profile, unique_phone)

    _reply(client, phone, "WORKOUT: no\nCALORIES: yes\nRATING: 9")

    db_session.expire_all()
    checkin = get_checkin(db_session, profile.id, today_local())
    assert checkin.did_workout is False
    assert checkin.hit_calorie_goal is True
    assert checkin.workout_rating is None


def test_whatsapp_sender_prefix_matches_session(client, override_sms, create_profile, unique_phone) -> None:
    _, phone, recorder = _start(client, override_sms, create_profile, unique_phone)
    _reply(client, f"whatsapp:{phone}", "yes")
    assert recorder.bodies_to(phone)[-1] == QUESTIONS[SmsStep.ask_hit_calories]


def test_unknown_sender_gets_fallback(client, db_session, override_sms, create_profile, unique_phone) -> None:
    phone = unique_phone()
    profile = create_profile(phone_number=phone, allow_sms_checkins=True)
    recorder = override_sms()

    _reply(client, phone, "yes")

    assert recorder.bodies_to(phone) == [NO_SESSION_MESSAGE]
    assert get_checkin(db_session, profile.id, today_local()) is None


def test_webhook_with_missing_fields_still_acknowledges(client, override_sms) -> None:
    override_sms()
    response = client.post("/sms/webhook", data={})
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_formatted_settings_number_matches_gateway_sender(
    client, db_session, override_sms, create_profile, unique_phone
) -> None:
    phone = unique_phone()
    spaced = f"{phone[:2]} {phone[2:5]} {phone[5:8]} {phone[8:]}"
    profile = create_profile()
    settings = client.put(
        f"/profiles/{profile.id}/sms-settings", json={"phone_number": spaced, "allow_sms_checkins": True}
    )
    assert settings.json()["phone_number"] == phone
    recorder = override_sms()
    client.post("/sms/checkin-cron")

    _reply(client, phone, "yes")

    assert recorder.bodies_to(phone)[-1] == QUESTIONS[SmsStep.ask_hit_calories]
    db_session.expire_all()
    assert get_checkin(db_session, profile.id, today_local()).did_workout is True
