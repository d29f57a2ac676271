from datetime import date

import pytest

from schedgrid.ranking import RankingMemo, compute_metrics, rank, reorder
from schedgrid.schemas import Booking, Resource, ResourceMetrics

DAY = date(2025, 7, 14)


def ids(resources):
    return [r.id for r in resources]


def test_priority_then_bookings_then_label():
    a = Resource(id="A", label="Alpha", priority=1)
    b = Resource(id="B", label="Bravo", priority=2)
    c = Resource(id="C", label="Charlie")
    metrics = {"B": ResourceMetrics(booking_count=3)}

    assert ids(rank([c, b, a], metrics)) == ["A", "B", "C"]


def test_ties_broken_by_booking_count_availability_and_case_insensitive_label():
    r = [
        Resource(id="1", label="zed"),
        Resource(id="2", label="Amy"),
        Resource(id="3", label="bob"),
        Resource(id="4", label="Cid"),
    ]
    metrics = {
        "4": ResourceMetrics(booking_count=2),
        "1": ResourceMetrics(booking_count=0, available_slots=5),
    }
    # Cid busiest, zed has most free slots, then Amy before bob ignoring case
    assert ids(rank(r, metrics)) == ["4", "1", "2", "3"]


def test_missing_priority_sorts_last():
    r = [Resource(id="x", label="A"), Resource(id="y", label="B", priority=500)]
    assert ids(rank(r)) == ["y", "x"]


def test_empty_input():
    assert rank([]) == []
    assert RankingMemo().rank([]) == []


def test_memo_returns_same_list_when_order_unchanged():
    memo = RankingMemo()
    resources = [Resource(id="A", label="A", priority=1), Resource(id="B", label="B", priority=2)]
    first = memo.rank(resources)
    # equal records rebuilt from a fresh feed still count as unchanged
    rebuilt = [Resource(id="B", label="B", priority=2), Resource(id="A", label="A", priority=1)]
    second = memo.rank(rebuilt, {"B": ResourceMetrics(booking_count=1)})

    assert second is first
    assert second[0] is first[0]


def test_memo_returns_new_list_when_order_or_record_changes():
    memo = RankingMemo()
    a = Resource(id="A", label="A", priority=1)
    b = Resource(id="B", label="B", priority=2)
    first = memo.rank([a, b])

    swapped = memo.rank([a, b.model_copy(update={"priority": 0})])
    assert swapped is not first
    assert ids(swapped) == ["B", "A"]

    renamed = memo.rank([a, b.model_copy(update={"priority": 0, "label": "Bea"})])
    assert renamed is not swapped
    assert renamed[0].label == "Bea"


def test_reorder_renumbers_from_one():
    r = [Resource(id=i, label=i) for i in ("a", "b", "c", "d")]
    assert reorder(r, 3, 0) == {"d": 1, "a": 2, "b": 3, "c": 4}


def test_reorder_out_of_range():
    with pytest.raises(IndexError):
        reorder([Resource(id="a", label="a")], 0, 2)


def test_compute_metrics_counts_active_assignments_and_free_rows():
    anna = Resource(id="p-1", label="Anna")
    bruno = Resource(id="p-2", label="Bruno")
    bookings = [
        Booking(id="b1", date=DAY, time_index=0, start_column=0, span=2, assigned=("Anna", "Bruno")),
        Booking(id="b2", date=DAY, time_index=1, start_column=0, assigned=("Anna",)),
        Booking(id="b3", date=DAY, time_index=2, start_column=0, assigned=("Anna",), status="deleted"),
        Booking(id="b4", date=date(2025, 7, 15), time_index=0, start_column=0, assigned=("Bruno",)),
    ]
    availability = {"p-1": {0, 1, 2, 3}, "p-2": {0}}

    metrics = compute_metrics([anna, bruno], bookings, availability, DAY)

    assert metrics["p-1"] == ResourceMetrics(booking_count=2, available_slots=2)
    assert metrics["p-2"] == ResourceMetrics(booking_count=1, available_slots=0)
