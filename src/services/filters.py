"""Caller-side filtering / sorting of a fetched releases snapshot."""

import datetime
from typing import Iterable, Literal

from src.constants import BUILTIN_CATEGORIES, ReleaseCategory, StingEnum
from src.models import ReleaseResponse
from src.utils import ensure_utc, utcnow

__all__ = ("DateFilter", "SortOrder", "filter_releases")

type SortOrder = Literal["asc", "desc"]
ALL_CATEGORIES = "all"


class DateFilter(StingEnum):
    ALL = "all"
    TODAY = "today"
    CURRENT_MONTH = "currentMonth"
    LAST_MONTH = "lastMonth"
    CUSTOM = "custom"


def _month_start(value: datetime.date) -> datetime.date:
    return value.replace(day=1)


def _date_bounds(
    date_filter: DateFilter,
    today: datetime.date,
    start: datetime.date | None,
    end: datetime.date | None,
) -> tuple[datetime.date | None, datetime.date | None]:
    """
    Inclusive date range for the filter (None means "unbounded")

    >>> _date_bounds(DateFilter.LAST_MONTH, datetime.date(2024, 3, 15), None, None)
    (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))
    """
    match date_filter:
        case DateFilter.TODAY:
            return today, today
        case DateFilter.CURRENT_MONTH:
            return _month_start(today), today
        case DateFilter.LAST_MONTH:
            last_month_end = _month_start(today) - datetime.timedelta(days=1)
            return _month_start(last_month_end), last_month_end
        case DateFilter.CUSTOM:
            return start, end

    return None, None


def _match_category(release: ReleaseResponse, category: str | None) -> bool:
    if not category or category == ALL_CATEGORIES:
        return True

    if category == ReleaseCategory.CUSTOM:
        return release.category not in BUILTIN_CATEGORIES

    return release.category == category


def filter_releases(
    releases: Iterable[ReleaseResponse],
    *,
    category: str | None = None,
    date_filter: DateFilter | str = DateFilter.ALL,
    start: datetime.date | None = None,
    end: datetime.date | None = None,
    sort_order: SortOrder = "desc",
    now: datetime.datetime | None = None,
) -> list[ReleaseResponse]:
    """
    Applies editor's filters to the releases list

    :param releases: snapshot from ReleaseRepository.fetch_all
    :param category: "all", one of the built-in categories or "custom" (any other category)
    :param date_filter: all / today / currentMonth / lastMonth / custom (uses start..end)
    :param start: first day of the custom range (inclusive)
    :param end: last day of the custom range (inclusive)
    :param sort_order: by release datetime, newest first ("desc") or oldest first ("asc")
    :param now: current instant (UTC now by default)
    """
    today = ensure_utc(now or utcnow(skip_tz=False)).date()
    date_from, date_to = _date_bounds(DateFilter(date_filter), today, start, end)

    result: list[ReleaseResponse] = []
    for release in releases:
        if not _match_category(release, category):
            continue

        release_date = ensure_utc(release.datetime).date()
        if date_from and release_date < date_from:
            continue
        if date_to and release_date > date_to:
            continue

        result.append(release)

    result.sort(key=lambda item: ensure_utc(item.datetime), reverse=(sort_order == "desc"))
    return result
