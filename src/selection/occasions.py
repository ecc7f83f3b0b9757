import calendar
from datetime import date, datetime, timezone
from typing import NamedTuple, Optional

from ..errors import InvalidDateError


class Occasion(NamedTuple):
    kind: str
    date: str
    days_until: int


def normalize_date(value) -> date:
    """
    把输入规整到自然日粒度。
    带时区的时间 (datetime 或 ISO 字符串) 先转换到 UTC；YYYY-MM-DD 直接取日期。
    """
    if isinstance(value, str):
        value = _parse_iso(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidDateError(value)


def _parse_iso(text: str):
    raw = text.strip()
    try:
        if len(raw) == 10:
            return date.fromisoformat(raw)
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        return datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidDateError(text) from None


def _observed_in(occasion: date, year: int) -> date:
    # 2 月 29 日在平年按 2 月 28 日过
    if occasion.month == 2 and occasion.day == 29 and not calendar.isleap(year):
        return date(year, 2, 28)
    return occasion.replace(year=year)


def days_until_occasion(occasion_date, reference_date) -> int:
    """距离下一次周年日 (纪念日/生日) 的天数；当天为 0，已过则顺延到明年"""
    occasion = normalize_date(occasion_date)
    reference = normalize_date(reference_date)

    upcoming = _observed_in(occasion, reference.year)
    if upcoming < reference:
        upcoming = _observed_in(occasion, reference.year + 1)
    return (upcoming - reference).days


def days_together(start_date, reference_date) -> Optional[int]:
    start = normalize_date(start_date)
    reference = normalize_date(reference_date)
    diff = (reference - start).days
    return diff if diff >= 0 else None


def upcoming_occasions(
    reference_date, anniversary=None, birthday=None
) -> list[Occasion]:
    occasions = []
    if anniversary:
        occasions.append(
            Occasion(
                "anniversary",
                normalize_date(anniversary).isoformat(),
                days_until_occasion(anniversary, reference_date),
            )
        )
    if birthday:
        occasions.append(
            Occasion(
                "birthday",
                normalize_date(birthday).isoformat(),
                days_until_occasion(birthday, reference_date),
            )
        )
    occasions.sort(key=lambda o: o.days_until)
    return occasions
