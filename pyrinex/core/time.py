# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""GNSS Time Systems and Conversions

Timestamps are kept as an integer count of nanoseconds since the reference
epoch of their own time system, so RINEX epochs (100 ns resolution) survive
parsing and re-formatting without rounding. Ordering and equality use the
absolute instant expressed in GPS time, which makes timestamps of different
time systems comparable.
"""

from datetime import date, datetime
from typing import Union

from .constants import (BDT0, DAY_SECONDS, GPS_BDS_OFFSET, GPS_TAI_OFFSET,
                        GPST0, GST0, TIME_SYSTEMS, WEEK_SECONDS)

NANOS = 1_000_000_000
_DAY_NANOS = DAY_SECONDS * NANOS
_WEEK_NANOS = WEEK_SECONDS * NANOS
_HOUR_NANOS = 3600 * NANOS
_MINUTE_NANOS = 60 * NANOS

_GPST0_ORDINAL = date(*GPST0[:3]).toordinal()
_GST0_ORDINAL = date(*GST0[:3]).toordinal()
_BDT0_ORDINAL = date(*BDT0[:3]).toordinal()

# Galileo and BeiDou week 0 start, expressed in nanoseconds from GPST0
_GST_SHIFT = (_GST0_ORDINAL - _GPST0_ORDINAL) * _DAY_NANOS
_BDT_SHIFT = (_BDT0_ORDINAL - _GPST0_ORDINAL) * _DAY_NANOS + int(GPS_BDS_OFFSET) * NANOS
_TAI_SHIFT = -int(GPS_TAI_OFFSET) * NANOS

# Leap seconds table (most recent first): UTC date from which GPST - UTC applies
LEAPSECONDS_TABLE = [
    (date(2017, 1, 1), 18),
    (date(2015, 7, 1), 17),
    (date(2012, 7, 1), 16),
    (date(2009, 1, 1), 15),
    (date(2006, 1, 1), 14),
    (date(1999, 1, 1), 13),
    (date(1997, 7, 1), 12),
    (date(1996, 1, 1), 11),
    (date(1994, 7, 1), 10),
    (date(1993, 7, 1), 9),
    (date(1992, 7, 1), 8),
    (date(1991, 1, 1), 7),
    (date(1990, 1, 1), 6),
    (date(1988, 1, 1), 5),
    (date(1985, 7, 1), 4),
    (date(1983, 7, 1), 3),
    (date(1982, 7, 1), 2),
    (date(1981, 7, 1), 1),
]


def get_leap_seconds(day: Union[date, datetime]) -> int:
    """Get GPST - UTC leap seconds in effect on the given UTC day.

    Parameters
    ----------
    day : date or datetime
        UTC calendar day

    Returns
    -------
    int
        Number of leap seconds to add to UTC to get GPS time
    """
    if isinstance(day, datetime):
        day = day.date()
    for start, leap in LEAPSECONDS_TABLE:
        if day >= start:
            return leap
    return 0


def _reference_ordinal(time_sys: str) -> int:
    if time_sys == 'GAL':
        return _GST0_ORDINAL
    if time_sys == 'BDS':
        return _BDT0_ORDINAL
    return _GPST0_ORDINAL


class GNSSTime:
    """GNSS Time representation tagged with its time system

    Time systems: ``GPS``, ``GLO``, ``GAL``, ``BDS``, ``QZS``, ``IRN``,
    ``UTC`` and ``TAI``. ``GLO`` epochs are UTC(SU) calendar times, as written
    in RINEX files. Week numbers count from each system's own reference epoch
    (GPS, Galileo, BeiDou); UTC, TAI, QZS and IRN share the GPS reference.
    """

    __slots__ = ('_ns', 'time_sys')

    def __init__(self, week: int = 0, tow: float = 0.0, time_sys: str = 'GPS'):
        """
        Initialize GNSS time

        Parameters:
        -----------
        week : int
            Week number
        tow : float
            Time of week in seconds
        time_sys : str
            Time system ('GPS', 'GLO', 'GAL', 'BDS', 'QZS', 'IRN', 'UTC', 'TAI')
        """
        self.time_sys = self._check_system(time_sys)
        self._ns = int(week) * _WEEK_NANOS + int(round(float(tow) * NANOS))

    @staticmethod
    def _check_system(time_sys: str) -> str:
        time_sys = time_sys.upper()
        if time_sys not in TIME_SYSTEMS:
            raise ValueError(f"Invalid time system: {time_sys}. Must be one of {list(TIME_SYSTEMS)}")
        return time_sys

    @classmethod
    def from_nanoseconds(cls, nanos: int, time_sys: str = 'GPS') -> 'GNSSTime':
        """Create GNSSTime from nanoseconds since the system reference epoch"""
        obj = cls.__new__(cls)
        obj.time_sys = cls._check_system(time_sys)
        obj._ns = int(nanos)
        return obj

    @classmethod
    def from_calendar(cls, year: int, month: int, day: int, hour: int = 0,
                      minute: int = 0, second: int = 0, nanos: int = 0,
                      time_sys: str = 'GPS') -> 'GNSSTime':
        """Create GNSSTime from calendar fields expressed in ``time_sys``"""
        time_sys = cls._check_system(time_sys)
        days = date(year, month, day).toordinal() - _reference_ordinal(time_sys)
        total = (days * _DAY_NANOS + hour * _HOUR_NANOS + minute * _MINUTE_NANOS
                 + second * NANOS + nanos)
        return cls.from_nanoseconds(total, time_sys)

    @property
    def nanoseconds(self) -> int:
        """Nanoseconds since the reference epoch of this time system"""
        return self._ns

    @property
    def week(self) -> int:
        return self._ns // _WEEK_NANOS

    @property
    def tow(self) -> float:
        return (self._ns % _WEEK_NANOS) / NANOS

    def to_calendar(self) -> tuple:
        """Decompose into (year, month, day, hour, minute, second, nanos)"""
        days, rem = divmod(self._ns, _DAY_NANOS)
        day = date.fromordinal(_reference_ordinal(self.time_sys) + days)
        hour, rem = divmod(rem, _HOUR_NANOS)
        minute, rem = divmod(rem, _MINUTE_NANOS)
        second, nanos = divmod(rem, NANOS)
        return day.year, day.month, day.day, hour, minute, second, nanos

    def to_datetime(self) -> datetime:
        """Convert to (naive) datetime object, microsecond resolution"""
        y, m, d, hh, mm, ss, ns = self.to_calendar()
        return datetime(y, m, d, hh, mm, ss, ns // 1000)

    def gpst_nanoseconds(self) -> int:
        """Absolute instant as nanoseconds since GPST0, in GPS time"""
        if self.time_sys in ('GPS', 'QZS', 'IRN'):
            return self._ns
        if self.time_sys == 'GAL':
            return self._ns + _GST_SHIFT
        if self.time_sys == 'BDS':
            return self._ns + _BDT_SHIFT
        if self.time_sys == 'TAI':
            return self._ns + _TAI_SHIFT
        # UTC and GLO (UTC(SU) calendar)
        day = date.fromordinal(_GPST0_ORDINAL + self._ns // _DAY_NANOS)
        return self._ns + get_leap_seconds(day) * NANOS

    def convert_to(self, target_sys: str) -> 'GNSSTime':
        """Convert to a different time system

        Parameters:
        -----------
        target_sys : str
            Target time system

        Returns:
        --------
        GNSSTime
            Same instant expressed in the target system
        """
        target_sys = self._check_system(target_sys)
        if target_sys == self.time_sys:
            return GNSSTime.from_nanoseconds(self._ns, self.time_sys)

        gpst = self.gpst_nanoseconds()
        if target_sys in ('GPS', 'QZS', 'IRN'):
            nanos = gpst
        elif target_sys == 'GAL':
            nanos = gpst - _GST_SHIFT
        elif target_sys == 'BDS':
            nanos = gpst - _BDT_SHIFT
        elif target_sys == 'TAI':
            nanos = gpst - _TAI_SHIFT
        else:
            # leap seconds are indexed by UTC day: refine once from the GPS day
            day = date.fromordinal(_GPST0_ORDINAL + gpst // _DAY_NANOS)
            nanos = gpst - get_leap_seconds(day) * NANOS
            day = date.fromordinal(_GPST0_ORDINAL + nanos // _DAY_NANOS)
            nanos = gpst - get_leap_seconds(day) * NANOS
        return GNSSTime.from_nanoseconds(nanos, target_sys)

    def add_seconds(self, seconds: float) -> 'GNSSTime':
        """Add seconds to time"""
        return GNSSTime.from_nanoseconds(self._ns + int(round(seconds * NANOS)), self.time_sys)

    def __add__(self, seconds: float) -> 'GNSSTime':
        """Add seconds using + operator"""
        if isinstance(seconds, (int, float)):
            return self.add_seconds(seconds)
        return NotImplemented

    def __sub__(self, other: Union['GNSSTime', float]) -> Union[float, 'GNSSTime']:
        """Subtract time (seconds between instants) or seconds"""
        if isinstance(other, GNSSTime):
            return (self.gpst_nanoseconds() - other.gpst_nanoseconds()) / NANOS
        if isinstance(other, (int, float)):
            return self.add_seconds(-other)
        return NotImplemented

    def __lt__(self, other: 'GNSSTime') -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self.gpst_nanoseconds() < other.gpst_nanoseconds()

    def __le__(self, other: 'GNSSTime') -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self.gpst_nanoseconds() <= other.gpst_nanoseconds()

    def __gt__(self, other: 'GNSSTime') -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self.gpst_nanoseconds() > other.gpst_nanoseconds()

    def __ge__(self, other: 'GNSSTime') -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self.gpst_nanoseconds() >= other.gpst_nanoseconds()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GNSSTime):
            return NotImplemented
        return self.gpst_nanoseconds() == other.gpst_nanoseconds()

    def __hash__(self):
        return hash(self.gpst_nanoseconds())

    def __str__(self):
        y, m, d, hh, mm, ss, ns = self.to_calendar()
        return f"{y:04d}-{m:02d}-{d:02d}T{hh:02d}:{mm:02d}:{ss:02d}.{ns // 100:07d} {self.time_sys}"

    def __repr__(self):
        return f"GNSSTime({self.week}, {self.tow}, '{self.time_sys}')"
