import datetime as dt
import itertools
from types import SimpleNamespace

from trucktracker.services.normalizer import NormalizedTelemetry
from trucktracker.services.query_service import QueryService, history_for, latest_per_tracker
from trucktracker.services.store import TrackerStore

UTC = dt.timezone.utc


def _rec(id, tracker_id, hour):
    return SimpleNamespace(id=id, tracker_id=tracker_id, last_update=dt.datetime(2024, 1, 1, hour, tzinfo=UTC))


RECORDS = [
    _rec(1, "T1", 8),
    _rec(2, "T2", 9),
    _rec(3, "T1", 11),
    _rec(4, "T2", 7),
    _rec(5, "T3", 10),
]


def test_latest_per_tracker_picks_max_last_update():
    latest = latest_per_tracker(RECORDS)
    assert [(r.tracker_id, r.id) for r in latest] == [("T1", 3), ("T3", 5), ("T2", 2)]


def test_latest_per_tracker_is_independent_of_input_order():
    expected = [r.id for r in latest_per_tracker(RECORDS)]
    for perm in itertools.permutations(RECORDS):
        assert [r.id for r in latest_per_tracker(perm)] == expected


def test_latest_per_tracker_breaks_timestamp_ties_by_id():
    a = _rec(10, "T1", 12)
    b = _rec(11, "T1", 12)
    assert latest_per_tracker([b, a])[0].id == 11
    assert latest_per_tracker([a, b])[0].id == 11


def test_latest_handles_naive_timestamps_as_utc():
    naive = SimpleNamespace(id=1, tracker_id="T1", last_update=dt.datetime(2024, 1, 1, 13))
    aware = _rec(2, "T1", 12)
    assert latest_per_tracker([aware, naive])[0].id == 1


def test_history_for_filters_and_orders_newest_first():
    assert [r.id for r in history_for(RECORDS, "T1")] == [3, 1]
    assert history_for(RECORDS, "NOPE") == []


def _insert(db, store, tracker_id, last_update):
    record = NormalizedTelemetry(tracker_id=tracker_id, last_update=last_update, latitude=1.0, longitude=2.0)
    return store.insert(db, record, "1,2")


def test_list_all_orders_by_last_update_desc(db):
    store = TrackerStore()
    _insert(db, store, "T1", dt.datetime(2024, 1, 1, 8, tzinfo=UTC))
    _insert(db, store, "T2", dt.datetime(2024, 1, 1, 12, tzinfo=UTC))
    _insert(db, store, "T1", dt.datetime(2024, 1, 1, 10, tzinfo=UTC))

    rows = QueryService(store).list_all(db)

    stamps = [r.last_update for r in rows]
    assert stamps == sorted(stamps, reverse=True)
    assert [r.tracker_id for r in rows] == ["T2", "T1", "T1"]


def test_latest_and_history_read_from_store(db):
    svc = QueryService()
    _insert(db, svc.store, "T1", dt.datetime(2024, 1, 1, 8, tzinfo=UTC))
    _insert(db, svc.store, "T1", dt.datetime(2024, 1, 1, 9, tzinfo=UTC))
    _insert(db, svc.store, "T2", dt.datetime(2024, 1, 1, 7, tzinfo=UTC))

    assert [(r.tracker_id, r.last_update.hour) for r in svc.latest(db)] == [("T1", 9), ("T2", 7)]
    assert [r.last_update.hour for r in svc.history(db, "T1")] == [9, 8]
