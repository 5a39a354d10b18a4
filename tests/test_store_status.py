from datetime import datetime

import pytest

from utils.store_status import StoreState, evaluate_store_status, validate_schedule

# 2024-01-05 is a Friday, 2024-01-06 a Saturday.
FRIDAY = (2024, 1, 5)
SATURDAY = (2024, 1, 6)

EVENINGS = {"fri": {"open": "18:00", "close": "23:00"}}
LATE_FRIDAY = {"fri": {"open": "18:00", "close": "00:00"}, "sat": {"open": "18:00", "close": "23:00"}}


def at(day, hour, minute):
    return datetime(*day, hour, minute)


@pytest.mark.parametrize("hour, minute, state", [
    (17, 59, StoreState.CLOSED_SCHEDULE),
    (18, 0, StoreState.OPEN),
    (22, 59, StoreState.OPEN),
    (23, 0, StoreState.CLOSED_SCHEDULE),
])
def test_schedule_boundaries(hour, minute, state):
    status = evaluate_store_status(True, EVENINGS, at(FRIDAY, hour, minute))
    assert status.state is state
    assert status.is_open is (state is StoreState.OPEN)


def test_closing_at_midnight_stays_open_until_end_of_day():
    status = evaluate_store_status(True, LATE_FRIDAY, at(FRIDAY, 23, 59))
    assert status.is_open
    assert status.close_time == "00:00"


def test_previous_day_session_does_not_carry_past_midnight():
    status = evaluate_store_status(True, LATE_FRIDAY, at(SATURDAY, 0, 30))
    assert status.state is StoreState.CLOSED_SCHEDULE
    assert status.next_open == "18:00"


def test_manual_close_wins_over_schedule():
    status = evaluate_store_status(False, EVENINGS, at(FRIDAY, 20, 0))
    assert status.state is StoreState.CLOSED_MANUAL
    assert status.is_manual_close


@pytest.mark.parametrize("schedule", [
    None,
    {},
    {"fri": None},
    {"fri": {"open": "", "close": "23:00"}},
    {"sat": {"open": "18:00", "close": "23:00"}},
])
def test_no_entry_for_today(schedule):
    status = evaluate_store_status(True, schedule, at(FRIDAY, 20, 0))
    assert status.state is StoreState.CLOSED_NO_SCHEDULE
    assert status.next_open is None


def test_to_dict():
    payload = evaluate_store_status(True, EVENINGS, at(FRIDAY, 17, 0)).to_dict()
    assert payload == {
        "is_open": False,
        "state": "closed_schedule",
        "is_manual_close": False,
        "next_open": "18:00",
        "close_time": "23:00",
    }


class TestValidateSchedule:
    def test_valid_week(self):
        schedule = {
            "mon": None,
            "tue": {"open": "11:30", "close": "15:00"},
            "fri": {"open": "18:00", "close": "00:00"},
        }
        assert validate_schedule(schedule) == []

    def test_overnight_range_is_rejected(self):
        errors = validate_schedule({"fri": {"open": "18:00", "close": "02:00"}})
        assert errors == ["fri must close after it opens (use 00:00 for midnight)"]

    def test_unpadded_times_are_rejected(self):
        assert validate_schedule({"mon": {"open": "9:00", "close": "17:00"}}) == ["mon time format must be HH:MM"]

    def test_unknown_day(self):
        assert validate_schedule({"funday": None}) == ["unknown day: funday"]
