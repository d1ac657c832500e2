import re
from dataclasses import dataclass
from typing import Optional

YES_TOKENS = {"yes", "y"}
NO_TOKENS = {"no", "n"}
SKIP_TOKEN = "skip"

_WORKOUT_RE = re.compile(r"workout\s*:\s*(yes|no|y|n)\b", re.IGNORECASE)
_CALORIES_RE = re.compile(r"calories?\s*:\s*(yes|no|y|n)\b", re.IGNORECASE)
_RATING_RE = re.compile(r"rating\s*:\s*(\d{1,2})", re.IGNORECASE)
_NOTES_RE = re.compile(r"notes?\s*:\s*(.+)$", re.IGNORECASE | re.DOTALL)
_COMPACT_RE = re.compile(r"^\s*([YN])\s+([YN])(?:\s+(\d{1,2}))?(?:\s+(.+))?$", re.IGNORECASE | re.DOTALL)

FORMAT_HELP = (
    "Reply like:\n"
    "WORKOUT: yes/no\nCALORIES: yes/no\nRATING: 7\nNOTES: quick recap\n\n"
    "Or simply: Y N 7 felt tired"
)


@dataclass(frozen=True)
class ParsedSmsCheckin:
    did_workout: Optional[bool]
    hit_calories: Optional[bool]
    rating: Optional[int]
    notes: Optional[str]

    @property
    def is_complete(self) -> bool:
        return self.did_workout is not None and self.hit_calories is not None


def parse_yes_no(token: Optional[str]) -> Optional[bool]:
    if token is None:
        return None
    text = token.strip().lower()
    if text in YES_TOKENS:
        return True
    if text in NO_TOKENS:
        return False
    return None


def parse_rating(token: Optional[str]) -> Optional[int]:
    if token is None:
        return None
    text = token.strip()
    if not text.isdigit():
        return None
    value = int(text)
    if 1 <= value <= 10:
        return value
    return None


def is_skip(text: str) -> bool:
    return text.strip().lower() == SKIP_TOKEN


def parse_key_value(body: str) -> Optional[ParsedSmsCheckin]:
    text = body.strip()
    workout = _WORKOUT_RE.search(text)
    calories = _CALORIES_RE.search(text)
    rating = _RATING_RE.search(text)
    notes = _NOTES_RE.search(text)
    if not (workout or calories or rating or notes):
        return None
    return ParsedSmsCheckin(
        did_workout=parse_yes_no(workout.group(1)) if workout else None,
        hit_calories=parse_yes_no(calories.group(1)) if calories else None,
        rating=parse_rating(rating.group(1)) if rating else None,
        notes=notes.group(1).strip() if notes else None,
    )


def parse_compact(body: str) -> Optional[ParsedSmsCheckin]:
    match = _COMPACT_RE.match(body.strip())
    if not match:
        return None
    notes = match.group(4).strip() if match.group(4) else None
    return ParsedSmsCheckin(
        did_workout=parse_yes_no(match.group(1)),
        hit_calories=parse_yes_no(match.group(2)),
        rating=parse_rating(match.group(3)),
        notes=notes or None,
    )


def parse_sms_body(body: str) -> Optional[ParsedSmsCheckin]:
    """Parse a one-message check-in; None means the caller should ask again."""
    return parse_key_value(body) or parse_compact(body)
