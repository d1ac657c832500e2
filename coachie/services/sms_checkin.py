"""Daily SMS check-in dialogue.

One inbound reply advances the (profile, date) session by at most one step:

    ask_did_workout -> ask_hit_calories -> [ask_rating] -> ask_notes -> complete

The rating step is skipped when the client did not work out. Every accepted
answer is written to the daily check-in immediately so an abandoned dialogue
still leaves partial data behind.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coachie.core.dates import today_local
from coachie.core.sms_parser import FORMAT_HELP, ParsedSmsCheckin, is_skip, parse_rating, parse_sms_body, parse_yes_no
from coachie.db.models import ClientProfile, DailyCheckin, SmsCheckinSession, SmsStep
from coachie.services.checkin_store import get_checkin, has_checkin, upsert_checkin
from coachie.services.sms import SmsSender, SmsSendError, normalize_inbound_phone

logger = logging.getLogger("uvicorn.error")

QUESTIONS = {
    SmsStep.ask_did_workout: "Did you work out today? Reply YES or NO.",
    SmsStep.ask_hit_calories: "Got it. Did you stay close to your calorie target today? Reply YES or NO.",
    SmsStep.ask_rating: (
        "Nice work. On a scale from 1-10, how would you rate your workout today? "
        "Reply with a number or type SKIP."
    ),
    SmsStep.ask_notes: "Any quick notes about today? Reply with a short message or type SKIP.",
}

INVALID_REPLIES = {
    SmsStep.ask_did_workout: "Please reply YES or NO so I can log whether you worked out today 💪.\n\n" + FORMAT_HELP,
    SmsStep.ask_hit_calories: "Please reply YES or NO so I can log your calories for today 🍽️.",
    SmsStep.ask_rating: "Please reply with a number between 1 and 10, or type SKIP.",
}

CONFIRMATION_MESSAGE = "Check-in saved ✅. Proud of you for staying accountable today."
ALREADY_COMPLETE_MESSAGE = "You're already checked in for today 🎉. You can see details in your CoachIE dashboard."
NO_SESSION_MESSAGE = (
    "Hey, I couldn't match this reply to an active check-in. Please try again later or log via the app."
)


@dataclass
class SmsTurnResult:
    reply: Optional[str]
    step: Optional[SmsStep]
    advanced: bool = False


@dataclass
class DailyPromptSummary:
    sent: int = 0
    skipped: int = 0
    failed: int = 0


def opening_message(profile: ClientProfile) -> str:
    return (
        f"Hey {profile.first_name}, quick check-in for today:\n\n"
        "Did you work out? Reply YES or NO.\n"
        "(Or send it all at once, like: Y N 7 felt strong)"
    )


def append_sms_note(existing: Optional[str], text: str) -> str:
    entry = f"[SMS] {text}"
    return f"{existing}\n{entry}" if existing else entry


def find_session(db: Session, phone_number: str, checkin_date: date) -> Optional[SmsCheckinSession]:
    return (
        db.query(SmsCheckinSession)
        .filter(SmsCheckinSession.phone_number == phone_number, SmsCheckinSession.checkin_date == checkin_date)
        .order_by(SmsCheckinSession.updated_at.desc())
        .first()
    )


def open_session(db: Session, profile: ClientProfile, phone_number: str, checkin_date: date) -> SmsCheckinSession:
    session = (
        db.query(SmsCheckinSession)
        .filter(SmsCheckinSession.profile_id == profile.id, SmsCheckinSession.checkin_date == checkin_date)
        .first()
    )
    if not session:
        session = SmsCheckinSession(profile_id=profile.id, checkin_date=checkin_date)
        db.add(session)
    session.phone_number = phone_number
    session.step = SmsStep.ask_did_workout
    db.commit()
    db.refresh(session)
    return session


def _claim_transition(db: Session, session: SmsCheckinSession, expected: SmsStep, next_step: SmsStep) -> bool:
    # Duplicate deliveries of the same reply race here; only one can move the step.
    updated = (
        db.query(SmsCheckinSession)
        .filter(SmsCheckinSession.id == session.id, SmsCheckinSession.step == expected)
        .update(
            {SmsCheckinSession.step: next_step, SmsCheckinSession.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
    )
    db.commit()
    return updated == 1


def _save_answers(db: Session, session: SmsCheckinSession, **fields: Any) -> None:
    try:
        upsert_checkin(db, session.profile_id, session.checkin_date, **fields)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "sms_checkin_upsert_error profile_id=%s checkin_date=%s fields=%s",
            session.profile_id,
            session.checkin_date,
            sorted(fields),
        )


def _advance(
    db: Session,
    session: SmsCheckinSession,
    expected: SmsStep,
    next_step: SmsStep,
    reply: str,
    **fields: Any,
) -> SmsTurnResult:
    # Capture keys before the commit in _claim_transition expires the instance.
    profile_id = session.profile_id
    if not _claim_transition(db, session, expected, next_step):
        logger.info("sms_checkin_stale_turn profile_id=%s expected_step=%s", profile_id, expected.value)
        return SmsTurnResult(reply=None, step=None, advanced=False)
    _save_answers(db, session, **fields)
    logger.info("sms_checkin_step profile_id=%s from=%s to=%s", profile_id, expected.value, next_step.value)
    return SmsTurnResult(reply=reply, step=next_step, advanced=True)


def _single_shot_reply(parsed: ParsedSmsCheckin, rating: Optional[int]) -> str:
    workout_text = "✅ Workout logged" if parsed.did_workout else "❌ No workout"
    calories_text = "✅ Calories on target" if parsed.hit_calories else "❌ Calories off target"
    rating_text = f"Rating: {rating}/10. " if rating is not None else ""
    return f"{workout_text}, {calories_text}. {rating_text}Your check-in for today is saved."


def _record_single_shot(
    db: Session, session: SmsCheckinSession, checkin: Optional[DailyCheckin], parsed: ParsedSmsCheckin
) -> SmsTurnResult:
    rating = parsed.rating if parsed.did_workout else None
    fields: dict[str, Any] = {
        "did_workout": parsed.did_workout,
        "hit_calorie_goal": parsed.hit_calories,
        "workout_rating": rating,
    }
    if parsed.notes:
        fields["notes"] = append_sms_note(checkin.notes if checkin else None, parsed.notes)
    return _advance(
        db,
        session,
        SmsStep.ask_did_workout,
        SmsStep.complete,
        _single_shot_reply(parsed, rating),
        **fields,
    )


def advance_session(db: Session, session: SmsCheckinSession, body: str) -> SmsTurnResult:
    text = (body or "").strip()
    step = SmsStep(session.step)
    checkin = get_checkin(db, session.profile_id, session.checkin_date)

    if step == SmsStep.ask_did_workout:
        answer = parse_yes_no(text)
        if answer is None:
            parsed = parse_sms_body(text)
            if parsed and parsed.is_complete:
                return _record_single_shot(db, session, checkin, parsed)
            return SmsTurnResult(reply=INVALID_REPLIES[step], step=step)
        return _advance(
            db, session, step, SmsStep.ask_hit_calories, QUESTIONS[SmsStep.ask_hit_calories], did_workout=answer
        )

    if step == SmsStep.ask_hit_calories:
        answer = parse_yes_no(text)
        if answer is None:
            return SmsTurnResult(reply=INVALID_REPLIES[step], step=step)
        did_workout = bool(checkin.did_workout) if checkin else False
        next_step = SmsStep.ask_rating if did_workout else SmsStep.ask_notes
        return _advance(db, session, step, next_step, QUESTIONS[next_step], hit_calorie_goal=answer)

    if step == SmsStep.ask_rating:
        if is_skip(text):
            rating = None
        else:
            rating = parse_rating(text)
            if rating is None:
                return SmsTurnResult(reply=INVALID_REPLIES[step], step=step)
        return _advance(db, session, step, SmsStep.ask_notes, QUESTIONS[SmsStep.ask_notes], workout_rating=rating)

    if step == SmsStep.ask_notes:
        fields: dict[str, Any] = {}
        if text and not is_skip(text):
            fields["notes"] = append_sms_note(checkin.notes if checkin else None, text)
        return _advance(db, session, step, SmsStep.complete, CONFIRMATION_MESSAGE, **fields)

    return SmsTurnResult(reply=ALREADY_COMPLETE_MESSAGE, step=SmsStep.complete)


def _send(sender: SmsSender, phone_number: str, body: str) -> bool:
    try:
        sender.send(phone_number, body)
        return True
    except SmsSendError:
        logger.exception("sms_send_error to=%s", phone_number)
        return False


def handle_inbound_sms(
    db: Session, sender: SmsSender, from_number: str, body: str, today: Optional[date] = None
) -> SmsTurnResult:
    phone_number = normalize_inbound_phone(from_number)
    session = find_session(db, phone_number, today or today_local())
    if not session:
        logger.info("sms_checkin_no_session phone=%s", phone_number)
        result = SmsTurnResult(reply=NO_SESSION_MESSAGE, step=None)
    else:
        result = advance_session(db, session, body)
    if result.reply and phone_number:
        _send(sender, phone_number, result.reply)
    return result


def start_daily_checkins(db: Session, sender: SmsSender, today: Optional[date] = None) -> DailyPromptSummary:
    """Open today's session and send the first question to every opted-in client without a check-in."""
    today = today or today_local()
    summary = DailyPromptSummary()
    profiles = (
        db.query(ClientProfile)
        .filter(ClientProfile.allow_sms_checkins.is_(True), ClientProfile.phone_number.isnot(None))
        .all()
    )
    for profile in profiles:
        profile_id = profile.id
        phone_number = (profile.phone_number or "").strip()
        if not phone_number:
            summary.skipped += 1
            continue
        try:
            if has_checkin(db, profile_id, today):
                summary.skipped += 1
                continue
            open_session(db, profile, phone_number, today)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("sms_checkin_session_error profile_id=%s", profile_id)
            summary.failed += 1
            continue
        if _send(sender, phone_number, opening_message(profile)):
            summary.sent += 1
        else:
            summary.failed += 1
    logger.info(
        "sms_checkin_cron date=%s sent=%s skipped=%s failed=%s",
        today.isoformat(),
        summary.sent,
        summary.skipped,
        summary.failed,
    )
    return summary
