from datetime import datetime, timedelta, timezone

import pytest

from calculator_server.core import history, users
from calculator_server.models import Calculation


BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def alice(db):
    return users.create_user(db, "alice", "alice@x.com", "Passw0rd")


@pytest.fixture
def bob(db):
    return users.create_user(db, "bob", "bob@x.com", "Passw0rd")


def add_entry(db, user, operation="addition", minutes=0, result=1.0):
    calc = Calculation(
        user_id=user.id,
        operation=operation,
        operands={"a": result},
        result=result,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
    )
    db.add(calc)
    db.commit()
    return calc


def test_record_calculation(db, alice):
    calc = history.record_calculation(
        db, alice.id, "addition", {"a": 10.0, "b": 5.0}, 15.0,
        user_agent="pytest", ip_address="127.0.0.1",
    )

    assert calc.id is not None
    public = history.public_calculation(calc)
    assert public["operation"] == "addition"
    assert public["operands"] == {"a": 10.0, "b": 5.0}
    assert public["result"] == 15.0
    assert public["metadata"] == {"userAgent": "pytest", "ipAddress": "127.0.0.1"}


def test_history_is_newest_first(db, alice):
    for minutes in (0, 10, 5):
        add_entry(db, alice, minutes=minutes, result=float(minutes))

    page = history.query_history(db, alice.id)
    assert [c.result for c in page.items] == [10.0, 5.0, 0.0]
    assert page.total == 3
    assert not page.has_more


def test_history_pagination(db, alice):
    for minutes in range(3):
        add_entry(db, alice, minutes=minutes, result=float(minutes))

    first = history.query_history(db, alice.id, limit=2, offset=0)
    second = history.query_history(db, alice.id, limit=2, offset=2)

    assert [c.result for c in first.items] == [2.0, 1.0]
    assert first.has_more
    assert [c.result for c in second.items] == [0.0]
    assert second.total == 3
    assert not second.has_more


def test_history_limit_is_clamped(db, alice):
    add_entry(db, alice)
    assert history.query_history(db, alice.id, limit=500).limit == 100
    assert history.query_history(db, alice.id, limit=0).limit == 1
    assert history.query_history(db, alice.id, offset=-5).offset == 0


def test_history_is_isolated_between_users(db, alice, bob):
    add_entry(db, alice, result=1.0)
    add_entry(db, bob, result=2.0)
    add_entry(db, bob, result=3.0)

    alice_page = history.query_history(db, alice.id)
    bob_page = history.query_history(db, bob.id)

    assert {c.user_id for c in alice_page.items} == {alice.id}
    assert {c.user_id for c in bob_page.items} == {bob.id}
    assert alice_page.total == 1
    assert bob_page.total == 2


def test_history_filters_by_operation(db, alice):
    add_entry(db, alice, "addition")
    add_entry(db, alice, "division", minutes=1)
    add_entry(db, alice, "division", minutes=2)

    page = history.query_history(db, alice.id, operation="division")
    assert page.total == 2
    assert {c.operation for c in page.items} == {"division"}


def test_history_date_range_is_inclusive(db, alice):
    for minutes in (0, 10, 20, 30):
        add_entry(db, alice, minutes=minutes, result=float(minutes))

    page = history.query_history(
        db, alice.id,
        start_date=BASE_TIME + timedelta(minutes=10),
        end_date=BASE_TIME + timedelta(minutes=20),
    )
    assert [c.result for c in page.items] == [20.0, 10.0]


def test_history_date_range_accepts_aware_datetimes(db, alice):
    add_entry(db, alice, minutes=0, result=0.0)
    add_entry(db, alice, minutes=60, result=60.0)

    # 14:30 at UTC+2 is 12:30 UTC
    start = datetime(2024, 1, 1, 14, 30, tzinfo=timezone(timedelta(hours=2)))
    page = history.query_history(db, alice.id, start_date=start)
    assert [c.result for c in page.items] == [60.0]


def test_clear_history_only_touches_one_user(db, alice, bob):
    add_entry(db, alice)
    add_entry(db, alice, minutes=1)
    add_entry(db, bob)

    assert history.clear_history(db, alice.id) == 2
    assert history.query_history(db, alice.id).total == 0
    assert history.query_history(db, bob.id).total == 1
    assert history.clear_history(db, alice.id) == 0


def test_stats(db, alice, bob):
    add_entry(db, alice, "addition", minutes=0)
    add_entry(db, alice, "division", minutes=5)
    add_entry(db, alice, "division", minutes=15)
    add_entry(db, alice, "square_root", minutes=10)
    add_entry(db, bob, "multiplication", minutes=99)

    stats = history.get_user_stats(db, alice.id)

    assert stats["totalCalculations"] == 4
    assert [s["operation"] for s in stats["operationStats"]] == ["division", "addition", "square_root"]
    assert stats["operationStats"][0]["count"] == 2
    assert stats["operationStats"][0]["lastUsed"] == "2024-01-01T12:15:00+00:00"
    assert stats["firstCalculation"] == "2024-01-01T12:00:00+00:00"
    assert stats["lastCalculation"] == "2024-01-01T12:15:00+00:00"


def test_stats_for_empty_history(db, alice):
    stats = history.get_user_stats(db, alice.id)
    assert stats == {
        "totalCalculations": 0,
        "operationStats": [],
        "firstCalculation": None,
        "lastCalculation": None,
    }
