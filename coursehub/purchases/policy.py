"""Content access policy.

Pure functions deciding, for a purchase instant and "now":
- whether a drip lesson is released, and how it is presented
- how many days have elapsed since purchase
- whether the purchase is still inside the refund window

Every function takes ``now`` explicitly (defaulting to the current UTC
instant) so callers and tests can pin time. Datetimes must be UTC-aware.
"""

import math
from datetime import UTC, date, datetime, timedelta

from coursehub.courses.models import Lesson
from coursehub.purchases.schemas import LessonContent


SECONDS_PER_DAY = 86_400
DEFAULT_REFUND_WINDOW_DAYS = 7
LOCKED_LESSON_PLACEHOLDER = "The content of this lesson will be released soon."


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


def release_at(purchased_at: datetime, drip_days: int) -> datetime:
    """Instant a lesson unlocks: purchase instant plus ``drip_days`` days.

    Time of day is carried over from the purchase instant. Zero or negative
    drip days release the lesson immediately. Offsets past the calendar
    range clamp to its ends, so such a lesson is never (or always) released.
    """
    try:
        return purchased_at + timedelta(days=drip_days)
    except OverflowError:
        bound = datetime.max if drip_days > 0 else datetime.min
        return bound.replace(tzinfo=UTC)


def release_date(purchased_at: datetime, drip_days: int) -> date:
    """Calendar date (UTC) on which a lesson unlocks."""
    return release_at(purchased_at, drip_days).astimezone(UTC).date()


def is_released(
    purchased_at: datetime,
    drip_days: int,
    now: datetime | None = None,
) -> bool:
    return _now(now) >= release_at(purchased_at, drip_days)


def days_since_purchase(purchased_at: datetime, now: datetime | None = None) -> int:
    """Whole days since purchase, rounded up.

    Uses the absolute elapsed time, so a purchase one second old counts as
    one day and a purchase timestamped slightly in the future still yields
    a positive count.
    """
    elapsed = abs((_now(now) - purchased_at).total_seconds())
    return math.ceil(elapsed / SECONDS_PER_DAY)


def is_refund_eligible(
    purchased_at: datetime,
    now: datetime | None = None,
    window_days: int = DEFAULT_REFUND_WINDOW_DAYS,
) -> bool:
    """True while ``days_since_purchase`` is at most ``window_days``."""
    return days_since_purchase(purchased_at, now) <= window_days


def present_lesson(
    lesson: Lesson,
    purchased_at: datetime,
    now: datetime | None = None,
) -> LessonContent:
    """Shape a lesson for a purchaser.

    Released lessons are returned in full with their links decoded. Locked
    lessons keep only id, title and order_index, plus the release date; the
    media fields are nulled and the description is replaced by a fixed
    placeholder.
    """
    if is_released(purchased_at, lesson.drip_days, now):
        return LessonContent(
            id=lesson.id,
            title=lesson.title,
            order_index=lesson.order_index,
            is_released=True,
            drip_days=lesson.drip_days,
            video_url=lesson.video_url,
            description_text=lesson.description_text,
            links=lesson.decoded_links(),
        )

    return LessonContent(
        id=lesson.id,
        title=lesson.title,
        order_index=lesson.order_index,
        is_released=False,
        release_date=release_date(purchased_at, lesson.drip_days),
        video_url=None,
        description_text=LOCKED_LESSON_PLACEHOLDER,
        links=None,
    )
