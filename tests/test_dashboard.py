"""
Dashboard aggregation, date presets and the stats state controller.
"""

from datetime import datetime, timezone

import pytest

from newsdesk.backend import InMemoryDocumentStore
from newsdesk.core.config import Config
from newsdesk.core.errors import BackendError
from newsdesk.modules.dashboard.state import LOAD_ERROR, DashboardController
from newsdesk.modules.dashboard.stats import (DashboardAggregator, DateRange, parse_range_args,
                                              percentage_change, preset_range)


def dt(*args):
    return datetime(*args, tzinfo=timezone.utc)


WEEK = DateRange(dt(2024, 3, 4), dt(2024, 3, 10, 23, 59, 59, 999999))


@pytest.fixture
def seeded_store():
    store = InMemoryDocumentStore()
    store.add(Config.ARTICLES_COLLECTION, {
        'title': 'Budget passes', 'status': 'published', 'published_at': dt(2024, 3, 5, 10),
        'view_count': 100, 'like_count': 5, 'comment_count': 2, 'category_ids': ['c1', 'c2'],
    }, doc_id='a1')
    store.add(Config.ARTICLES_COLLECTION, {
        'title': 'Derby result', 'status': 'published', 'published_at': dt(2024, 3, 6, 9),
        'view_count': 300, 'like_count': 1, 'comment_count': 0, 'category_ids': ['c1', 'gone'],
    }, doc_id='a2')
    store.add(Config.ARTICLES_COLLECTION, {
        'title': 'Last week story', 'status': 'published', 'published_at': dt(2024, 2, 28, 12),
        'view_count': 50, 'category_ids': ['c2'],
    }, doc_id='a3')
    store.add(Config.ARTICLES_COLLECTION, {
        'title': 'Unfinished draft', 'status': 'draft', 'published_at': None, 'view_count': 0,
    }, doc_id='a4')

    store.add(Config.CATEGORIES_COLLECTION, {'name': 'Politics', 'created_at': dt(2024, 3, 5)}, doc_id='c1')
    store.add(Config.CATEGORIES_COLLECTION, {'name': 'Sports', 'created_at': dt(2024, 1, 1)}, doc_id='c2')

    store.add(Config.USERS_COLLECTION, {'role': 'author', 'created_at': dt(2024, 3, 5)}, doc_id='u1')
    store.add(Config.USERS_COLLECTION, {'role': 'editor', 'created_at': dt(2024, 2, 27)}, doc_id='u2')
    store.add(Config.USERS_COLLECTION, {'role': 'admin', 'created_at': dt(2023, 12, 15)}, doc_id='u3')
    return store


@pytest.fixture
def aggregator(seeded_store):
    return DashboardAggregator(seeded_store, clock=lambda: dt(2024, 3, 6, 12))


# ---------------------------------------------------------------------------
# percentage_change
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("current,previous,expected", [
    (0, 0, 0),
    (5, 0, 100),
    (3, 2, 50),
    (2, 4, -50),
    (4, 4, 0),
    (11, 8, 38),   # 37.5 rounds up
    (5, 8, -37),   # -37.5 rounds towards positive infinity
    (1, 3, -67),
])
def test_percentage_change(current, previous, expected):
    assert percentage_change(current, previous) == expected


# ---------------------------------------------------------------------------
# DateRange and presets
# ---------------------------------------------------------------------------

def test_date_range_rejects_inverted_range():
    with pytest.raises(ValueError):
        DateRange(dt(2024, 3, 10), dt(2024, 3, 1))


def test_date_range_normalizes_inputs():
    date_range = DateRange("2024-03-01", "2024-03-02T10:00:00Z")
    assert date_range.start_date == dt(2024, 3, 1)
    assert date_range.end_date == dt(2024, 3, 2, 10)


def test_previous_period_has_equal_length():
    previous = WEEK.previous()
    assert previous.end_date == WEEK.start_date
    assert previous.length == WEEK.length


def test_presets_mid_week():
    today = dt(2024, 3, 6, 15, 30)  # Wednesday

    this_week = preset_range('this-week', today)
    assert this_week.start_date == dt(2024, 3, 4)
    assert this_week.end_date == dt(2024, 3, 10, 23, 59, 59, 999999)

    last_week = preset_range('last-week', today)
    assert last_week.start_date == dt(2024, 2, 26)
    assert last_week.end_date == dt(2024, 3, 3, 23, 59, 59, 999999)

    this_month = preset_range('this-month', today)
    assert this_month.start_date == dt(2024, 3, 1)
    assert this_month.end_date == dt(2024, 3, 31, 23, 59, 59, 999999)

    last_month = preset_range('last-month', today)
    assert last_month.start_date == dt(2024, 2, 1)
    assert last_month.end_date == dt(2024, 2, 29, 23, 59, 59, 999999)


def test_last_month_across_year_boundary():
    last_month = preset_range('last-month', dt(2024, 1, 15))
    assert last_month.start_date == dt(2023, 12, 1)
    assert last_month.end_date == dt(2023, 12, 31, 23, 59, 59, 999999)


def test_week_starts_on_monday_even_on_sunday():
    this_week = preset_range('this-week', dt(2024, 3, 10))
    assert this_week.start_date == dt(2024, 3, 4)


def test_custom_preset_has_no_fixed_range():
    with pytest.raises(ValueError):
        preset_range('custom', dt(2024, 3, 6))


def test_parse_range_args_custom_dates():
    date_range, preset = parse_range_args({'start': '2024-03-01', 'end': '2024-03-03'})
    assert preset == 'custom'
    assert date_range.start_date == dt(2024, 3, 1)
    assert date_range.end_date == dt(2024, 3, 3, 23, 59, 59, 999999)


def test_parse_range_args_preset():
    date_range, preset = parse_range_args({'preset': 'last-week'}, today=dt(2024, 3, 6))
    assert preset == 'last-week'
    assert date_range.start_date == dt(2024, 2, 26)


def test_fixed_preset_ignores_dates_sent_with_it():
    args = {'preset': 'last-week', 'start': '2024-03-04', 'end': '2024-03-10'}
    date_range, preset = parse_range_args(args, today=dt(2024, 3, 6))
    assert preset == 'last-week'
    assert date_range == preset_range('last-week', dt(2024, 3, 6))


def test_custom_preset_reads_dates():
    args = {'preset': 'custom', 'start': '2024-02-01', 'end': '2024-02-10'}
    date_range, preset = parse_range_args(args, today=dt(2024, 3, 6))
    assert preset == 'custom'
    assert date_range.start_date == dt(2024, 2, 1)
    assert date_range.end_date == dt(2024, 2, 10, 23, 59, 59, 999999)


@pytest.mark.parametrize("args", [
    {'preset': 'yesterday'},
    {'start': '2024-03-01'},
    {'start': '2024-03-05', 'end': '2024-03-01'},
    {'start': 'not-a-date', 'end': '2024-03-01'},
    {'preset': 'custom'},
])
def test_parse_range_args_rejects_bad_input(args):
    with pytest.raises(ValueError):
        parse_range_args(args, today=dt(2024, 3, 6))


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def test_totals(aggregator):
    stats = aggregator.get_stats(WEEK)
    assert stats.total_articles == 2
    assert stats.total_categories == 2
    assert stats.total_users == 3


def test_total_views_falls_back_to_article_counts(aggregator):
    stats = aggregator.get_stats(WEEK)
    assert stats.total_views == 400
    assert stats.views_change_percentage == 0


def test_page_views_preferred_when_present(seeded_store, aggregator):
    seeded_store.add(Config.PAGE_VIEWS_COLLECTION, {'date': dt(2024, 3, 5), 'count': 10})
    seeded_store.add(Config.PAGE_VIEWS_COLLECTION, {'date': dt(2024, 3, 6), 'count': 5})
    seeded_store.add(Config.PAGE_VIEWS_COLLECTION, {'date': dt(2024, 2, 28), 'count': 10})

    stats = aggregator.get_stats(WEEK)
    assert stats.total_views == 15
    assert stats.views_change_percentage == 50
    by_day = {point.date: point.views for point in stats.views_by_day}
    assert by_day['2024-03-05'] == 10
    assert by_day['2024-03-06'] == 5
    assert by_day['2024-03-07'] == 0


def test_published_counts(aggregator):
    stats = aggregator.get_stats(WEEK)
    assert stats.articles_published_today == 1
    assert stats.articles_published_this_week == 2
    assert stats.articles_published_this_month == 2


def test_published_today_excludes_later_days(seeded_store, aggregator):
    seeded_store.add(Config.ARTICLES_COLLECTION, {
        'title': 'Scheduled piece', 'status': 'published', 'published_at': dt(2024, 3, 8, 9),
    })
    stats = aggregator.get_stats(WEEK)
    assert stats.articles_published_today == 1
    assert stats.articles_published_this_week == 3


def test_published_today_zero_after_range_end(seeded_store):
    aggregator = DashboardAggregator(seeded_store, clock=lambda: dt(2024, 3, 20))
    assert aggregator.get_stats(WEEK).articles_published_today == 0


def test_change_percentages(aggregator):
    stats = aggregator.get_stats(WEEK)
    # two articles now against one in the previous week
    assert stats.articles_change_percentage == 100
    # one new user in each period
    assert stats.users_change_percentage == 0
    assert stats.categories_change_this_week == 1


def test_top_categories(aggregator):
    stats = aggregator.get_stats(WEEK)
    top = [(c.id, c.name, c.count) for c in stats.top_categories]
    assert top[0] == ('c1', 'Politics', 2)
    assert ('c2', 'Sports', 1) in top
    assert ('gone', 'Unknown category', 1) in top
    assert len(top) == 3


def test_top_articles_ordered_by_views(aggregator):
    stats = aggregator.get_stats(WEEK)
    assert [a.id for a in stats.top_articles] == ['a2', 'a1']
    assert stats.top_articles[1].likes == 5
    assert stats.top_articles[1].comments == 2


def test_top_lists_capped_at_five():
    store = InMemoryDocumentStore()
    for i in range(8):
        store.add(Config.ARTICLES_COLLECTION, {
            'title': f'Story {i}', 'published_at': dt(2024, 3, 5), 'view_count': i,
            'category_ids': [f'c{i}'],
        })
    stats = DashboardAggregator(store).get_stats(WEEK)
    assert len(stats.top_articles) == 5
    assert len(stats.top_categories) == 5
    assert stats.top_articles[0].views == 7


def test_user_growth_covers_six_months(aggregator):
    stats = aggregator.get_stats(WEEK)
    assert [(p.date, p.count) for p in stats.user_growth] == [
        ('2023-10', 0), ('2023-11', 0), ('2023-12', 1),
        ('2024-01', 0), ('2024-02', 1), ('2024-03', 1),
    ]


def test_views_by_day_capped_at_seven_days(aggregator):
    month = DateRange(dt(2024, 3, 1), dt(2024, 3, 31, 23, 59, 59))
    stats = aggregator.get_stats(month)
    assert [p.date for p in stats.views_by_day] == [
        '2024-03-25', '2024-03-26', '2024-03-27', '2024-03-28',
        '2024-03-29', '2024-03-30', '2024-03-31',
    ]


def test_views_by_day_short_range(aggregator):
    short = DateRange(dt(2024, 3, 5), dt(2024, 3, 6, 23, 59, 59))
    stats = aggregator.get_stats(short)
    assert [p.date for p in stats.views_by_day] == ['2024-03-05', '2024-03-06']


def test_empty_store_is_all_zero():
    stats = DashboardAggregator(InMemoryDocumentStore()).get_stats(WEEK)
    assert stats.total_articles == 0
    assert stats.total_views == 0
    assert stats.articles_change_percentage == 0
    assert stats.top_articles == ()
    assert len(stats.user_growth) == 6


def test_stats_serialize_to_dict(aggregator):
    data = aggregator.get_stats(WEEK).to_dict()
    assert data['total_articles'] == 2
    assert data['top_articles'][0] == {'id': 'a2', 'title': 'Derby result', 'views': 300,
                                       'likes': 1, 'comments': 0}
    assert isinstance(data['user_growth'], list)


def test_backend_failure_propagates():
    class BrokenStore:
        def query(self, query):
            raise BackendError("down")

        def count(self, query):
            raise BackendError("down")

    with pytest.raises(BackendError):
        DashboardAggregator(BrokenStore()).get_stats(WEEK)


# ---------------------------------------------------------------------------
# State controller
# ---------------------------------------------------------------------------

def test_load_replaces_snapshot(aggregator):
    controller = DashboardController(aggregator.get_stats)
    state = controller.load(WEEK, 'this-week')

    assert state.loading is False
    assert state.error is None
    assert state.stats.total_articles == 2
    assert state.preset == 'this-week'

    other = DateRange(dt(2024, 2, 26), dt(2024, 3, 3, 23, 59, 59))
    state = controller.change_range(other, 'last-week')
    assert state.stats.total_articles == 1
    assert state.date_range == other


def test_each_load_fetches_once():
    calls = []

    def fetch(date_range):
        calls.append(date_range)
        return DashboardAggregator(InMemoryDocumentStore()).get_stats(date_range)

    controller = DashboardController(fetch)
    controller.load(WEEK)
    controller.change_range(WEEK.previous())
    assert calls == [WEEK, WEEK.previous()]


def test_failure_clears_stats_and_sets_error(aggregator):
    results = [aggregator.get_stats]

    def fetch(date_range):
        if results:
            return results.pop()(date_range)
        raise BackendError("unreachable")

    controller = DashboardController(fetch)
    assert controller.load(WEEK).stats is not None

    state = controller.load(WEEK)
    assert state.loading is False
    assert state.stats is None
    assert state.error == LOAD_ERROR


def test_stale_response_is_dropped(aggregator):
    controller = DashboardController(aggregator.get_stats)
    first = controller.begin(WEEK, 'this-week')
    second = controller.begin(WEEK.previous(), 'last-week')
    assert controller.state.loading is True

    stale = aggregator.get_stats(WEEK)
    assert controller.complete(first, stale) is False
    assert controller.state.stats is None
    assert controller.state.loading is True

    fresh = aggregator.get_stats(WEEK.previous())
    assert controller.complete(second, fresh) is True
    assert controller.state.stats is fresh
    assert controller.state.preset == 'last-week'

    # a late failure from the superseded request changes nothing
    assert controller.fail(first) is False
    assert controller.state.stats is fresh


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def test_stats_api(client, admin):
    resp = client.get("/admin/api/stats?start=2024-03-04&end=2024-03-10")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['preset'] == 'custom'
    assert body['error'] is None
    assert body['stats']['total_users'] == 1
    assert len(body['stats']['views_by_day']) == 7


def test_stats_api_rejects_bad_range(client, admin):
    resp = client.get("/admin/api/stats?start=2024-03-10&end=2024-03-01")
    assert resp.status_code == 400


def test_stats_api_reports_backend_failure(client, newsdesk, admin, monkeypatch):
    def broken(self, date_range):
        raise BackendError("unreachable")

    monkeypatch.setattr(DashboardAggregator, "get_stats", broken)
    resp = client.get("/admin/api/stats")
    assert resp.status_code == 500
    assert resp.get_json()['error'] == LOAD_ERROR
    assert resp.get_json()['stats'] is None


def test_dashboard_page_with_preset(client, admin):
    resp = client.get("/admin/?preset=last-month")
    assert resp.status_code == 200
    assert b"Top articles" in resp.data


def test_dashboard_page_bad_preset(client, admin):
    resp = client.get("/admin/?preset=fortnight")
    assert resp.status_code == 400


def test_stats_api_preset_overrides_prefilled_dates(client, admin):
    resp = client.get("/admin/api/stats?preset=last-week&start=2024-03-04&end=2024-03-10")
    assert resp.status_code == 200
    body = resp.get_json()
    expected = preset_range('last-week')
    assert body['preset'] == 'last-week'
    assert body['date_range']['start_date'] == expected.start_date.isoformat()
    assert body['date_range']['end_date'] == expected.end_date.isoformat()


def test_stats_api_echoes_generation_per_user(client, admin):
    first = client.get("/admin/api/stats?preset=this-week").get_json()
    second = client.get("/admin/api/stats?preset=last-week").get_json()
    assert second['generation'] == first['generation'] + 1


def test_overtaken_stats_request_is_rejected(client, newsdesk, admin, monkeypatch):
    controller = newsdesk.dashboards.for_user(admin)
    original = DashboardAggregator.get_stats

    def overtaken(self, date_range):
        # a newer request from the same user starts while this one is in flight
        controller.begin(date_range.previous(), 'custom')
        return original(self, date_range)

    monkeypatch.setattr(DashboardAggregator, "get_stats", overtaken)
    resp = client.get("/admin/api/stats?preset=this-week")

    assert resp.status_code == 409
    body = resp.get_json()
    assert body['generation'] < controller.state.generation
    assert controller.state.stats is None
    assert controller.state.loading is True


def test_users_get_separate_controllers(newsdesk):
    assert newsdesk.dashboards.for_user('u1') is newsdesk.dashboards.for_user('u1')
    assert newsdesk.dashboards.for_user('u1') is not newsdesk.dashboards.for_user('u2')


def test_logout_discards_dashboard_controller(client, newsdesk, admin):
    controller = newsdesk.dashboards.for_user(admin)
    client.get("/admin/logout")
    assert newsdesk.dashboards.for_user(admin) is not controller
