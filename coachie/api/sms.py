import logging

from fastapi import APIRouter, Depends, Form
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coachie.db.session import get_db
from coachie.services.sms import SmsSender, get_sms_sender
from coachie.services.sms_checkin import handle_inbound_sms, start_daily_checkins

router = APIRouter(prefix="/sms", tags=["sms"])
logger = logging.getLogger("uvicorn.error")


class WebhookAck(BaseModel):
    ok: bool = True


class CheckinCronResponse(BaseModel):
    ok: bool = True
    sent: int
    skipped: int
    failed: int


@router.post("/webhook", response_model=WebhookAck)
def sms_webhook(
    From: str = Form(default=""),
    Body: str = Form(default=""),
    db: Session = Depends(get_db),
    sender: SmsSender = Depends(get_sms_sender),
) -> WebhookAck:
    # Always 2xx for the gateway.
    try:
        handle_inbound_sms(db, sender, From, Body)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("sms_webhook_store_error from=%s", From)
    return WebhookAck()


@router.post("/checkin-cron", response_model=CheckinCronResponse)
def sms_checkin_cron(
    db: Session = Depends(get_db),
    sender: SmsSender = Depends(get_sms_sender),
) -> CheckinCronResponse:
    summary = start_daily_checkins(db, sender)
    return CheckinCronResponse(sent=summary.sent, skipped=summary.skipped, failed=summary.failed)
