"""
Logbook Statistics
==================

Monthly and all-time totals over a list of flight legs:
block hours, number of flights, landings, night hours, PIC hours and
cross-country hours.

Night flying uses a simple clock heuristic: a leg counts as night when its
OFF or ON time, in the reference timezone, falls at or after the night start
hour or at or before the night end hour. The whole block time of such a leg
is credited as night.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

import pandas as pd
import pytz

from models.data_models import FlightLeg, MetricGroup
from core.parameters import StatisticsParameters

logger = logging.getLogger(__name__)

_COLUMNS = ['date', 'block_hours', 'landings', 'is_night', 'is_pic', 'is_cross_country']


class LogbookStatistics:
    """Aggregate flight legs into MetricGroup totals"""

    def __init__(self, params: StatisticsParameters = None):
        self.params = params or StatisticsParameters()
        self.tz = pytz.timezone(self.params.reference_timezone)

    def to_frame(self, legs: List[FlightLeg]) -> pd.DataFrame:
        """One row per leg with the fields the totals are built from"""
        records = [
            {
                'date': pd.Timestamp(leg.date),
                'block_hours': leg.block_time.total_seconds() / 3600,
                'landings': leg.landings,
                'is_night': self.is_night_flight(leg),
                'is_pic': leg.is_self,
                'is_cross_country': leg.is_cross_country,
            }
            for leg in legs
        ]
        return pd.DataFrame.from_records(records, columns=_COLUMNS)

    def is_night_flight(self, leg: FlightLeg) -> bool:
        for instant in (leg.off_time, leg.on_time):
            hour = instant.astimezone(self.tz).hour
            if hour >= self.params.night_start_hour or hour <= self.params.night_end_hour:
                return True
        return False

    def summarize(self, df: pd.DataFrame) -> MetricGroup:
        if df.empty:
            return MetricGroup()
        block = df['block_hours']
        return MetricGroup(
            block_hours=float(block.sum()),
            flights=int(len(df)),
            landings=int(df['landings'].sum()),
            night_hours=float(block[df['is_night']].sum()),
            pic_hours=float(block[df['is_pic']].sum()),
            cross_country_hours=float(block[df['is_cross_country']].sum()),
        )

    def all_time(self, legs: List[FlightLeg]) -> MetricGroup:
        return self.summarize(self.to_frame(legs))

    def monthly(self, legs: List[FlightLeg],
                as_of: Optional[Union[date, datetime]] = None) -> MetricGroup:
        """Totals for legs dated within the rolling window ending at as_of"""
        if as_of is None:
            as_of = datetime.now(pytz.utc)
        if isinstance(as_of, datetime):
            as_of = as_of.astimezone(pytz.utc).date() if as_of.tzinfo else as_of.date()

        window_start = as_of - timedelta(days=self.params.monthly_window_days)
        df = self.to_frame(legs)
        if df.empty:
            return MetricGroup()
        mask = (df['date'] >= pd.Timestamp(window_start)) & (df['date'] <= pd.Timestamp(as_of))
        return self.summarize(df[mask])

    def monthly_breakdown(self, legs: List[FlightLeg]) -> Dict[str, MetricGroup]:
        """Totals per calendar month, keyed "YYYY-MM" in chronological order"""
        df = self.to_frame(legs)
        if df.empty:
            return {}
        df['month'] = df['date'].dt.to_period('M').astype(str)
        breakdown = {
            month: self.summarize(group)
            for month, group in df.groupby('month', sort=True)
        }
        logger.debug("Monthly breakdown over %d legs: %d months", len(legs), len(breakdown))
        return breakdown
