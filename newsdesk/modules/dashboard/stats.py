"""
Dashboard Statistics
====================

Computes the dashboard snapshot for a date range from the document store.
A snapshot is immutable; the dashboard replaces it wholesale whenever the
date range changes.
"""

import logging
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Tuple

from ...backend.query import Query
from ...core.config import Config
from ...core.dates import (add_months, end_of_day, start_of_day, start_of_month,
                           to_datetime, utcnow)

logger = logging.getLogger(__name__)

PRESETS = ('this-week', 'last-week', 'this-month', 'last-month', 'custom')

TOP_LIMIT = 5
USER_GROWTH_MONTHS = 6
MAX_DAILY_POINTS = 7
UNKNOWN_CATEGORY = 'Unknown category'


@dataclass(frozen=True)
class DateRange:
    start_date: datetime
    end_date: datetime

    def __post_init__(self):
        object.__setattr__(self, 'start_date', to_datetime(self.start_date))
        object.__setattr__(self, 'end_date', to_datetime(self.end_date))
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")

    @property
    def length(self) -> timedelta:
        return self.end_date - self.start_date

    def previous(self) -> 'DateRange':
        """The period of equal length ending where this one starts"""
        return DateRange(self.start_date - self.length, self.start_date)


def preset_range(preset: str, today: Optional[datetime] = None) -> DateRange:
    """
    Date range for a named preset; weeks run Monday to Sunday

    Raises:
        ValueError: unknown preset, or 'custom' (which has no fixed range)
    """
    today = start_of_day(to_datetime(today or utcnow()))
    week_start = today - timedelta(days=today.weekday())
    month_start = start_of_month(today)

    if preset == 'this-week':
        return DateRange(week_start, end_of_day(week_start + timedelta(days=6)))
    if preset == 'last-week':
        start = week_start - timedelta(days=7)
        return DateRange(start, end_of_day(start + timedelta(days=6)))
    if preset == 'this-month':
        return DateRange(month_start, end_of_day(add_months(month_start, 1) - timedelta(days=1)))
    if preset == 'last-month':
        start = add_months(month_start, -1)
        return DateRange(start, end_of_day(month_start - timedelta(days=1)))
    raise ValueError(f"No fixed range for preset '{preset}'")


def percentage_change(current: int, previous: int) -> int:
    """
    Whole-number percentage change versus the previous period

    0 when both are zero, 100 when growing from zero, otherwise rounded
    half up.
    """
    if previous == 0:
        return 0 if current == 0 else 100
    return int(math.floor((current - previous) / previous * 100 + 0.5))


@dataclass(frozen=True)
class CategoryStat:
    id: str
    name: str
    count: int


@dataclass(frozen=True)
class ArticleStat:
    id: str
    title: str
    views: int
    likes: int
    comments: int


@dataclass(frozen=True)
class UserGrowthStat:
    date: str
    count: int


@dataclass(frozen=True)
class ViewsByDayStat:
    date: str
    views: int


@dataclass(frozen=True)
class DashboardStats:
    total_articles: int
    total_categories: int
    total_users: int
    total_views: int
    articles_published_today: int
    articles_published_this_week: int
    articles_published_this_month: int
    articles_change_percentage: int
    views_change_percentage: int
    categories_change_this_week: int
    users_change_percentage: int
    top_categories: Tuple[CategoryStat, ...]
    top_articles: Tuple[ArticleStat, ...]
    user_growth: Tuple[UserGrowthStat, ...]
    views_by_day: Tuple[ViewsByDayStat, ...]

    def to_dict(self):
        data = asdict(self)
        for key in ('top_categories', 'top_articles', 'user_growth', 'views_by_day'):
            data[key] = list(data[key])
        return data


def _count(value) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


class DashboardAggregator:
    """
    Builds DashboardStats snapshots

    Args:
        store: document store (hosted client or in-memory)
        clock: returns "now"; injectable for tests
    """

    def __init__(self, store, clock: Callable[[], datetime] = None):
        self.store = store
        self.clock = clock or utcnow
        self.articles = Config.ARTICLES_COLLECTION
        self.categories = Config.CATEGORIES_COLLECTION
        self.users = Config.USERS_COLLECTION
        self.page_views = Config.PAGE_VIEWS_COLLECTION

    # --- store helpers ---

    def _published_between(self, start, end, end_inclusive=True):
        return Query(self.articles).between('published_at', start, end, end_inclusive)

    def _count_published(self, start, end, end_inclusive=True):
        return self.store.count(self._published_between(start, end, end_inclusive))

    def _count_created(self, collection, start, end, end_inclusive=True):
        return self.store.count(Query(collection).between('created_at', start, end, end_inclusive))

    def _sum_views(self, start, end, end_inclusive=True):
        rows = self.store.query(Query(self.page_views).between('date', start, end, end_inclusive))
        return sum(_count(row.get('count')) for row in rows)

    def _published_on(self, day, end):
        """Articles published on ``day``, never past ``end``"""
        if day > end:
            return 0
        next_day = day + timedelta(days=1)
        if end < next_day:
            return self._count_published(day, end)
        return self._count_published(day, next_day, end_inclusive=False)

    # --- public API ---

    def get_stats(self, date_range: DateRange) -> DashboardStats:
        """
        Compute the snapshot for ``date_range``

        Raises:
            BackendError: any store lookup failed (no partial snapshot)
        """
        start, end = date_range.start_date, date_range.end_date
        previous = date_range.previous()

        articles_in_range = self.store.query(self._published_between(start, end))
        categories = self.store.query(Query(self.categories))
        total_users = self.store.count(Query(self.users))

        range_views = self._sum_views(start, end)
        total_views = range_views
        if total_views == 0:
            total_views = sum(_count(a.get('view_count')) for a in articles_in_range)

        today = start_of_day(self.clock())
        week_start = start_of_day(end - timedelta(days=6))

        previous_articles = self._count_published(previous.start_date, previous.end_date, end_inclusive=False)
        previous_views = self._sum_views(previous.start_date, previous.end_date, end_inclusive=False)
        new_users = self._count_created(self.users, start, end)
        previous_users = self._count_created(self.users, previous.start_date, previous.end_date, end_inclusive=False)

        stats = DashboardStats(
            total_articles=len(articles_in_range),
            total_categories=len(categories),
            total_users=total_users,
            total_views=total_views,
            articles_published_today=self._published_on(today, end),
            articles_published_this_week=self._count_published(week_start, end),
            articles_published_this_month=self._count_published(start_of_month(end), end),
            articles_change_percentage=percentage_change(len(articles_in_range), previous_articles),
            views_change_percentage=percentage_change(range_views, previous_views),
            categories_change_this_week=self._count_created(self.categories, start, end),
            users_change_percentage=percentage_change(new_users, previous_users),
            top_categories=self._top_categories(articles_in_range, categories),
            top_articles=self._top_articles(articles_in_range),
            user_growth=self._user_growth(end),
            views_by_day=self._views_by_day(date_range),
        )
        logger.debug(f"Dashboard stats computed for {start.isoformat()} - {end.isoformat()}")
        return stats

    def _top_categories(self, articles, categories):
        names = {c['id']: c.get('name') or UNKNOWN_CATEGORY for c in categories}
        counts = {}
        for article in articles:
            for category_id in article.get('category_ids') or []:
                counts[category_id] = counts.get(category_id, 0) + 1

        ranked = sorted(counts.items(), key=lambda item: (-item[1], names.get(item[0], UNKNOWN_CATEGORY)))
        return tuple(CategoryStat(id=cid, name=names.get(cid, UNKNOWN_CATEGORY), count=count)
                     for cid, count in ranked[:TOP_LIMIT])

    def _top_articles(self, articles):
        # ranked here: the hosted database cannot order by a field other than the ranged one
        rows = sorted(articles, key=lambda a: _count(a.get('view_count')), reverse=True)[:TOP_LIMIT]
        return tuple(ArticleStat(
            id=row['id'],
            title=row.get('title') or '',
            views=_count(row.get('view_count')),
            likes=_count(row.get('like_count')),
            comments=_count(row.get('comment_count')),
        ) for row in rows)

    def _user_growth(self, end):
        growth = []
        last_month = start_of_month(end)
        for offset in range(USER_GROWTH_MONTHS - 1, -1, -1):
            month_start = add_months(last_month, -offset)
            month_end = add_months(month_start, 1)
            growth.append(UserGrowthStat(
                date=month_start.strftime('%Y-%m'),
                count=self._count_created(self.users, month_start, month_end, end_inclusive=False),
            ))
        return tuple(growth)

    def _views_by_day(self, date_range):
        end_day = start_of_day(date_range.end_date)
        span = (date_range.end_date - date_range.start_date).days + 1
        points = []
        for offset in range(min(MAX_DAILY_POINTS, span) - 1, -1, -1):
            day = end_day - timedelta(days=offset)
            points.append(ViewsByDayStat(
                date=day.strftime('%Y-%m-%d'),
                views=self._sum_views(day, day + timedelta(days=1), end_inclusive=False),
            ))
        return tuple(points)


def parse_range_args(args, today: Optional[datetime] = None) -> Tuple[DateRange, str]:
    """
    Read ``start``/``end``/``preset`` query arguments

    A fixed preset wins over any dates sent with it; ``start``/``end`` are
    only read for a custom range. Missing arguments fall back to the
    current week.

    Raises:
        ValueError: unknown preset, unparsable dates, or start after end
    """
    preset = args.get('preset') or None
    if preset and preset not in PRESETS:
        raise ValueError(f"Unknown preset '{preset}'")
    if preset and preset != 'custom':
        return preset_range(preset, today), preset

    start, end = args.get('start'), args.get('end')
    if not (start or end):
        if preset == 'custom':
            raise ValueError("A custom range needs start and end dates")
        return preset_range('this-week', today), 'this-week'
    if not (start and end):
        raise ValueError("Both start and end are required for a custom range")

    start_dt, end_dt = to_datetime(start), to_datetime(end)
    # a bare end date covers that whole day
    if len(end.strip()) == 10:
        end_dt = end_of_day(end_dt)
    return DateRange(start_dt, end_dt), 'custom'


def date_value(value) -> str:
    """YYYY-MM-DD for date inputs in the range picker"""
    if isinstance(value, (datetime, date)):
        return value.strftime('%Y-%m-%d')
    return ''
