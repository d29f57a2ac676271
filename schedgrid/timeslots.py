"""Seasonal time rows for a day, with per-day label overrides and extra slots."""
from schedgrid.config import Config
from schedgrid.schemas import TimeRow

_AUTUMN = ("8:00", "9:15", "10:30", "12:00", "13:30", "14:45", "16:00")
_WINTER = ("8:30", "9:45", "11:00", "12:15", "13:45", "15:00")
_MARCH = ("7:30", "8:30", "9:45", "11:00", "12:15", "13:45", "15:00", "16:00")
_SUMMER = ("7:30", "8:30", "9:45", "11:00", "12:30", "14:00", "15:30", "16:45")


def base_slots(day):
    month = day.month
    if month == 10 and day.day >= 11:
        return list(_AUTUMN)
    if month in (11, 2):
        return list(_AUTUMN)
    if month in (12, 1):
        return list(_WINTER)
    if month == 3:
        return list(_MARCH)
    return list(_SUMMER)


def to_minutes(label):
    hours, minutes = label.strip().split(":")
    return int(hours) * 60 + int(minutes)


def is_additional(index):
    return index >= Config.ADDITIONAL_SLOT_OFFSET


def time_rows(day, overrides=None, additional=None):
    """
    All rows for a day sorted by displayed time.

    Base rows keep their position in the seasonal table as index; extra
    rows are numbered from ADDITIONAL_SLOT_OFFSET so the two ranges never
    collide, whatever the season's length.
    """
    overrides = overrides or {}
    rows = [
        TimeRow(index=i, label=overrides.get(i, label), is_overridden=i in overrides)
        for i, label in enumerate(base_slots(day))
    ]
    rows += [
        TimeRow(index=Config.ADDITIONAL_SLOT_OFFSET + i, label=label, is_additional=True)
        for i, label in enumerate(additional or [])
    ]
    rows.sort(key=lambda r: to_minutes(r.label))
    return rows


def labels(rows):
    return {r.index: r.label for r in rows}
