"""
Logbook Statistics Tests
========================

Run: python -m pytest tests/test_statistics.py -v
"""

from datetime import date, datetime, timedelta

import pytest
import pytz

from core.parameters import StatisticsParameters
from core.statistics import LogbookStatistics
from models.data_models import FlightLeg, MetricGroup

UTC = pytz.utc


def _leg(day, out_hour, block_minutes, month=10, is_self=False, landings=1,
         departure="VHHH", arrival="RCTP"):
    out_time = datetime(2024, month, day, out_hour, 0, tzinfo=UTC)
    return FlightLeg(
        flight_number="CX400", date=out_time.date(),
        aircraft_registration="B-KPA", aircraft_type="A359",
        departure_airport=departure, arrival_airport=arrival,
        out_time=out_time,
        off_time=out_time + timedelta(minutes=10),
        on_time=out_time + timedelta(minutes=block_minutes - 10),
        in_time=out_time + timedelta(minutes=block_minutes),
        pilot_in_command="J. Smith", is_self=is_self, landings=landings,
    )


@pytest.fixture
def stats():
    return LogbookStatistics()


class TestAllTime:

    def test_empty_logbook(self, stats):
        assert stats.all_time([]) == MetricGroup()

    def test_totals(self, stats):
        legs = [
            _leg(1, 8, 120, is_self=True, landings=2),
            _leg(2, 9, 90),
            _leg(3, 10, 60, departure="VHHH", arrival="VHHH"),
        ]
        totals = stats.all_time(legs)
        assert totals.flights == 3
        assert totals.landings == 4
        assert totals.block_hours == pytest.approx(4.5)
        assert totals.pic_hours == pytest.approx(2.0)
        assert totals.cross_country_hours == pytest.approx(3.5)
        assert totals.night_hours == 0

    def test_formatted_one_decimal(self, stats):
        totals = stats.all_time([_leg(1, 8, 100)])
        assert totals.formatted()['block_hours'] == "1.7"
        assert totals.formatted()['flights'] == "1"


class TestNight:

    @pytest.mark.parametrize("out_hour, expected", [
        (10, False),
        (17, True),     # ON at 18:50
        (22, True),
        (3, True),
        (6, True),      # OFF at 06:10 counts (hour <= 6)
        (7, False),
    ])
    def test_off_or_on_hour(self, stats, out_hour, expected):
        assert stats.is_night_flight(_leg(1, out_hour, 120)) is expected

    def test_night_hours_credit_whole_block(self, stats):
        totals = stats.all_time([_leg(1, 22, 180), _leg(2, 10, 60)])
        assert totals.night_hours == pytest.approx(3.0)

    def test_reference_timezone(self):
        # 10:00Z is 18:00 in Hong Kong
        hkt = LogbookStatistics(StatisticsParameters(reference_timezone="Asia/Hong_Kong"))
        assert hkt.is_night_flight(_leg(1, 10, 120))


class TestMonthly:

    def test_rolling_window(self, stats):
        legs = [
            _leg(1, 8, 60, month=9),      # 45 days before as_of
            _leg(20, 8, 60, month=9),     # inside
            _leg(14, 8, 60, month=10),    # as_of itself
            _leg(20, 8, 60, month=10),    # after as_of
        ]
        totals = stats.monthly(legs, as_of=date(2024, 10, 14))
        assert totals.flights == 2
        assert totals.block_hours == pytest.approx(2.0)

    def test_as_of_datetime(self, stats):
        legs = [_leg(14, 8, 60)]
        assert stats.monthly(legs, as_of=datetime(2024, 10, 14, 23, 0, tzinfo=UTC)).flights == 1

    def test_custom_window(self):
        short = LogbookStatistics(StatisticsParameters(monthly_window_days=7))
        legs = [_leg(1, 8, 60), _leg(10, 8, 60)]
        assert short.monthly(legs, as_of=date(2024, 10, 12)).flights == 1

    def test_empty(self, stats):
        assert stats.monthly([], as_of=date(2024, 10, 14)) == MetricGroup()

    def test_breakdown_by_calendar_month(self, stats):
        legs = [_leg(30, 8, 60, month=9), _leg(1, 8, 120), _leg(2, 8, 60)]
        breakdown = stats.monthly_breakdown(legs)
        assert list(breakdown) == ["2024-09", "2024-10"]
        assert breakdown["2024-10"].flights == 2
        assert breakdown["2024-10"].block_hours == pytest.approx(3.0)
