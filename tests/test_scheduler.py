import pytest

from app.scheduler import daily_trigger, hourly_trigger, parse_schedule_time


def trigger_fields(trigger):
    return {field.name: str(field) for field in trigger.fields}


def test_parse_schedule_time():
    assert parse_schedule_time("07:00") == (7, 0)
    assert parse_schedule_time("23:45") == (23, 45)


def test_parse_schedule_time_rejects_out_of_range():
    with pytest.raises(ValueError):
        parse_schedule_time("24:00")


def test_daily_trigger_runs_at_configured_utc_time():
    fields = trigger_fields(daily_trigger("07:30"))
    assert fields["hour"] == "7"
    assert fields["minute"] == "30"


def test_hourly_trigger_runs_on_the_hour():
    fields = trigger_fields(hourly_trigger())
    assert fields["minute"] == "0"
    assert fields["hour"] == "*"
