"""
Column ordering for resources.

Resources are sorted by explicit priority first (lower sits further left,
missing priority goes last), then by how busy they are on the active day,
then by how much availability they have left, then alphabetically.
"""
import logging

from schedgrid.config import Config
from schedgrid.schemas import ResourceMetrics

logger = logging.getLogger(__name__)

_EMPTY_METRICS = ResourceMetrics()


def _sort_key(resource, metrics):
    m = metrics.get(resource.id, _EMPTY_METRICS)
    priority = resource.priority if resource.priority is not None else Config.PRIORITY_SENTINEL
    return (priority, -m.booking_count, -m.available_slots, resource.label.casefold(), resource.id)


def rank(resources, metrics=None):
    """Return a new list of resources in column order."""
    metrics = metrics or {}
    return sorted(resources, key=lambda r: _sort_key(r, metrics))


class RankingMemo:
    """
    Memoized `rank` that keeps the previous list object when nothing moved.

    Equality contract: the result of a call is the *same list object* as the
    previous result when the ranked id sequence is unchanged and every
    resource in it compares equal to the one returned before. Any other
    change (new id, reordered id, edited resource record) yields a fresh list.
    """

    def __init__(self):
        self._last = None

    def rank(self, resources, metrics=None):
        ordered = rank(resources, metrics)
        last = self._last
        if last is not None and len(last) == len(ordered) and all(
            a.id == b.id and a == b for a, b in zip(last, ordered)
        ):
            return last
        logger.debug("column order changed: %s", [r.id for r in ordered])
        self._last = ordered
        return ordered

    def reset(self):
        self._last = None


def reorder(resources, from_index, to_index):
    """
    Move one column and renumber everybody.

    Returns {resource_id: priority} with priorities 1..n following the new
    order, ready to be written back to the resource profiles.
    """
    ordered = list(resources)
    if not (0 <= from_index < len(ordered)) or not (0 <= to_index < len(ordered)):
        raise IndexError(f"reorder {from_index}->{to_index} outside 0..{len(ordered) - 1}")
    moved = ordered.pop(from_index)
    ordered.insert(to_index, moved)
    return {r.id: i + 1 for i, r in enumerate(ordered)}


def compute_metrics(resources, bookings, availability, day):
    """
    Per-resource metrics for one day.

    booking_count counts active bookings that list the resource's label in
    their assignments; available_slots is the number of time rows the
    resource is marked available at minus the ones it is already booked on.
    """
    counts = {r.id: 0 for r in resources}
    busy_rows = {r.id: set() for r in resources}
    by_label = {r.label: r.id for r in resources}
    for b in bookings:
        if b.date != day or not b.is_active:
            continue
        for name in b.assigned:
            rid = by_label.get(name)
            if rid is None:
                continue
            counts[rid] += 1
            busy_rows[rid].add(b.time_index)

    result = {}
    for r in resources:
        free = availability.get(r.id, set()) - busy_rows[r.id]
        result[r.id] = ResourceMetrics(booking_count=counts[r.id], available_slots=len(free))
    return result
