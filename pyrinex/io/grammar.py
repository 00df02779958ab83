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

"""Line grammar registry.

Maps (format version, file type, constellation / message type) to the
column layout of body records. Lookups are pure; an unknown combination
raises :class:`UnsupportedDialect`.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.constants import (SYS_BDS, SYS_GAL, SYS_GLO, SYS_GPS, SYS_IRN,
                              SYS_NONE, SYS_QZS, SYS_SBS, char2sys, sys2char)
from ..core.data_structures import FileType
from ..core.ephemeris import NavMessageType
from ..core.errors import UnsupportedDialect
from ..core.time import GNSSTime

# Format major versions understood per file type
SUPPORTED_VERSIONS = {
    FileType.OBSERVATION: (2, 3, 4),
    FileType.NAVIGATION: (2, 3, 4),
    FileType.METEO: (2, 3, 4),
    FileType.IONEX: (1,),
    FileType.CLOCK: (2, 3),
}

# RINEX 2 navigation files carry one constellation, given by the type letter
NAV2_CONSTELLATIONS = {'N': SYS_GPS, 'G': SYS_GLO, 'H': SYS_SBS}


@dataclass(frozen=True)
class ObservationLayout:
    """Observation epoch and data line layout"""
    dialect: str
    major: int
    epoch_marker: str              # '>' for RINEX 3/4
    time_cols: Tuple[int, int]
    flag_col: int
    nsat_cols: Tuple[int, int]
    clock_cols: Tuple[int, int]
    clock_format: str
    sat_start: int                 # satellite list on the epoch line (RINEX 2)
    sats_per_line: int
    data_start: int                # first observation column on a data line
    obs_per_line: Optional[int]    # None: a satellite record is one line
    field_width: int = 16
    codes_per_header_line: int = 9

    def format_epoch(self, time: GNSSTime) -> str:
        y, m, d, hh, mi, ss, ns = time.to_calendar()
        if self.major == 2:
            return f" {y % 100:02d} {m:2d} {d:2d} {hh:2d} {mi:2d} {ss:2d}.{ns // 100:07d}"
        return f"> {y:04d} {m:02d} {d:02d} {hh:02d} {mi:02d} {ss:2d}.{ns // 100:07d}"


@dataclass(frozen=True)
class NavigationLayout:
    """Navigation record layout: one epoch line plus broadcast orbit lines"""
    dialect: str
    major: int
    id_width: int                  # PRN (RINEX 2) or SV (RINEX 3/4)
    value_start: int               # first clock value on the epoch line
    indent: int                    # broadcast orbit line indentation
    field_width: int = 19
    per_line: int = 4
    frame_marker: Optional[str] = None   # '>' record frames (RINEX 4)

    def format_epoch(self, time: GNSSTime) -> str:
        y, m, d, hh, mi, ss, ns = time.to_calendar()
        if self.major == 2:
            return f"{y % 100:02d} {m:2d} {d:2d} {hh:2d} {mi:2d} {ss:2d}.{ns // 100000000:1d}"
        return f"{y:04d} {m:02d} {d:02d} {hh:02d} {mi:02d} {ss:02d}"


@dataclass(frozen=True)
class MeteoLayout:
    dialect: str
    major: int
    epoch_width: int
    field_width: int = 7
    first_line: int = 8
    per_line: int = 10
    indent: int = 4

    def format_epoch(self, time: GNSSTime) -> str:
        y, m, d, hh, mi, ss, _ = time.to_calendar()
        if self.major == 2:
            return f" {y % 100:02d} {m:2d} {d:2d} {hh:2d} {mi:2d} {ss:2d}"
        return f" {y:4d} {m:2d} {d:2d} {hh:2d} {mi:2d} {ss:2d}"


@dataclass(frozen=True)
class IonexLayout:
    dialect: str
    major: int
    values_per_line: int = 16
    value_width: int = 5

    @staticmethod
    def format_epoch(time: GNSSTime) -> str:
        y, m, d, hh, mi, ss, _ = time.to_calendar()
        return f"{y:6d}{m:6d}{d:6d}{hh:6d}{mi:6d}{ss:6d}"


@dataclass(frozen=True)
class ClockLayout:
    dialect: str
    major: int
    name_width: int
    first_line_values: int = 2
    per_line: int = 4

    def format_epoch(self, time: GNSSTime) -> str:
        y, m, d, hh, mi, ss, ns = time.to_calendar()
        return f"{y:4d} {m:02d} {d:02d} {hh:02d} {mi:02d} {ss:2d}.{ns // 1000:06d}"


def resolve(version: Tuple[int, int], file_type: FileType, constellation: int = SYS_NONE):
    """Resolve the body layout of a (version, file type, constellation) dialect.

    Parameters
    ----------
    version : tuple
        (major, minor) format version
    file_type : FileType
        File type from the version line
    constellation : int
        Constellation from the version line (navigation RINEX 2 only)

    Returns
    -------
    layout
        One of the ``*Layout`` descriptors

    Raises
    ------
    UnsupportedDialect
        Unknown combination
    """
    major, minor = version
    tag = f"{major}.{minor:02d}"
    if major not in SUPPORTED_VERSIONS.get(file_type, ()):
        raise UnsupportedDialect(f"No grammar for {file_type.name} version {tag}",
                                 file_type=file_type.value, version=tag)

    if file_type is FileType.OBSERVATION:
        if major == 2:
            return ObservationLayout(
                dialect="OBS/2", major=2, epoch_marker='', time_cols=(0, 26),
                flag_col=28, nsat_cols=(29, 32), clock_cols=(68, 80),
                clock_format='{:12.9f}', sat_start=32, sats_per_line=12,
                data_start=0, obs_per_line=5, codes_per_header_line=9)
        return ObservationLayout(
            dialect=f"OBS/{major}", major=major, epoch_marker='>', time_cols=(1, 29),
            flag_col=31, nsat_cols=(32, 35), clock_cols=(41, 56),
            clock_format='{:15.12f}', sat_start=0, sats_per_line=0,
            data_start=3, obs_per_line=None, codes_per_header_line=13)

    if file_type is FileType.NAVIGATION:
        if major == 2:
            if constellation not in NAV2_CONSTELLATIONS.values():
                raise UnsupportedDialect(
                    f"No RINEX 2 navigation grammar for constellation {sys2char(constellation)!r}",
                    file_type=file_type.value, version=tag)
            return NavigationLayout(dialect=f"NAV/2/{sys2char(constellation)}", major=2,
                                    id_width=2, value_start=22, indent=3)
        return NavigationLayout(dialect=f"NAV/{major}", major=major, id_width=3,
                                value_start=23, indent=4,
                                frame_marker='>' if major >= 4 else None)

    if file_type is FileType.METEO:
        return MeteoLayout(dialect=f"MET/{major}", major=major,
                           epoch_width=18 if major == 2 else 20)

    if file_type is FileType.IONEX:
        return IonexLayout(dialect="IONEX/1", major=major)

    # Clock RINEX 3.04 widened the receiver/satellite name to 9 characters
    return ClockLayout(dialect=f"CLK/{major}", major=major,
                       name_width=9 if (major, minor) >= (3, 4) else 4)


# Broadcast orbit parameter names per line; None marks a spare slot
_KEPLER_HEAD = (
    ('crs', 'delta_n', 'm0'),
    ('cuc', 'e', 'cus', 'sqrt_a'),
    ('toe', 'cic', 'omega0', 'cis'),
    ('i0', 'crc', 'omega', 'omega_dot'),
)


def _kepler(first: str, *tail):
    head = ((first,) + _KEPLER_HEAD[0],) + _KEPLER_HEAD[1:]
    return head + tuple(tail)


_GPS_LNAV = _kepler(
    'iode',
    ('idot', 'l2_codes', 'week', 'l2p_flag'),
    ('sv_accuracy', 'health', 'tgd', 'iodc'),
    ('transmission_time', 'fit_interval'),
)

_GAL = _kepler(
    'iodnav',
    ('idot', 'data_src', 'week', None),
    ('sisa', 'health', 'bgd_e5a_e1', 'bgd_e5b_e1'),
    ('transmission_time',),
)

_BDS_D1D2 = _kepler(
    'aode',
    ('idot', None, 'week', None),
    ('sv_accuracy', 'sath1', 'tgd1_b1_b3', 'tgd2_b2_b3'),
    ('transmission_time', 'aodc'),
)

_IRN_LNAV = _kepler(
    'iodec',
    ('idot', None, 'week', None),
    ('ura', 'health', 'tgd', None),
    ('transmission_time',),
)

_GPS_CNAV = _kepler(
    'adot',
    ('idot', 'delta_n_dot', 'urai_ned0', 'urai_ned1'),
    ('urai_ed', 'health', 'tgd', 'urai_ned2'),
    ('isc_l1ca', 'isc_l2c', 'isc_l5i5', 'isc_l5q5'),
    ('transmission_time', 'week'),
)

_GPS_CNV2 = _GPS_CNAV[:-1] + (
    ('isc_l1cd', 'isc_l1cp', None, None),
    ('transmission_time', 'week'),
)

_BDS_CNV_HEAD = _kepler(
    'adot',
    ('idot', 'delta_n_dot', 'sat_type', 't_op'),
    ('sisai_oe', 'sisai_ocb', 'sisai_oc1', 'sisai_oc2'),
)

_BDS_CNV1 = _BDS_CNV_HEAD + (
    ('isc_b1cd', None, 'tgd_b1cp', 'tgd_b2ap'),
    ('sismai', 'health', 'integrity_flags', 'iodc'),
    ('transmission_time', None, None, 'iode'),
)

_BDS_CNV2 = _BDS_CNV_HEAD + (
    ('isc_b2ad', None, 'tgd_b1cp', 'tgd_b2ap'),
    ('sismai', 'health', 'integrity_flags', 'iodc'),
    ('transmission_time', None, None, 'iode'),
)

_BDS_CNV3 = _BDS_CNV_HEAD + (
    ('sismai', 'health', 'integrity_flags', 'tgd_b2bi'),
    ('transmission_time',),
)

_GLO_FDMA = (
    ('x', 'vel_x', 'accel_x', 'health'),
    ('y', 'vel_y', 'accel_y', 'freq_num'),
    ('z', 'vel_z', 'accel_z', 'age_op'),
)

_GLO_FDMA_EXT = _GLO_FDMA + (
    ('status_flags', 'delta_tau_l1l2', 'urai', 'health_flags'),
)

_SBAS = (
    ('x', 'vel_x', 'accel_x', 'health'),
    ('y', 'vel_y', 'accel_y', 'ura'),
    ('z', 'vel_z', 'accel_z', 'iodn'),
)

ORBIT_FIELDS = {
    (SYS_GPS, NavMessageType.LNAV): _GPS_LNAV,
    (SYS_QZS, NavMessageType.LNAV): _GPS_LNAV,
    (SYS_GPS, NavMessageType.CNAV): _GPS_CNAV,
    (SYS_QZS, NavMessageType.CNAV): _GPS_CNAV,
    (SYS_GPS, NavMessageType.CNV2): _GPS_CNV2,
    (SYS_QZS, NavMessageType.CNV2): _GPS_CNV2,
    (SYS_GAL, NavMessageType.INAV): _GAL,
    (SYS_GAL, NavMessageType.FNAV): _GAL,
    (SYS_BDS, NavMessageType.D1): _BDS_D1D2,
    (SYS_BDS, NavMessageType.D2): _BDS_D1D2,
    (SYS_BDS, NavMessageType.CNV1): _BDS_CNV1,
    (SYS_BDS, NavMessageType.CNV2): _BDS_CNV2,
    (SYS_BDS, NavMessageType.CNV3): _BDS_CNV3,
    (SYS_IRN, NavMessageType.LNAV): _IRN_LNAV,
    (SYS_GLO, NavMessageType.FDMA): _GLO_FDMA,
    (SYS_SBS, NavMessageType.SBAS): _SBAS,
}


def orbit_fields(layout: NavigationLayout, system: int, msg_type: NavMessageType,
                 minor: int = 0) -> Tuple[Tuple[Optional[str], ...], ...]:
    """Broadcast orbit line layout of a navigation message.

    The number of tuples is the number of continuation lines following the
    epoch line.
    """
    fields = ORBIT_FIELDS.get((system, msg_type))
    if fields is None:
        raise UnsupportedDialect(
            f"No {msg_type.value} message layout for constellation {sys2char(system)!r}",
            dialect=layout.dialect)
    # GLONASS gained a fourth orbit line in RINEX 3.05
    if fields is _GLO_FDMA and (layout.major >= 4 or (layout.major == 3 and minor >= 5)):
        return _GLO_FDMA_EXT
    return fields


def parse_float(text: str) -> Optional[float]:
    """Parse a Fortran real field; blank gives None, D exponents accepted"""
    text = text.strip()
    if not text:
        return None
    return float(text.replace('D', 'E').replace('d', 'E'))


def format_d19(value: Optional[float]) -> str:
    """Render a navigation/clock value as D19.12 (E exponent)"""
    if value is None:
        return ' ' * 19
    return f"{value:19.12E}"


def parse_epoch(text: str, time_sys: str = 'GPS') -> GNSSTime:
    """Parse a 'Y M D h m s[.f]' epoch.

    Two-digit years map to 1980-2079. Fractional seconds keep up to
    nanosecond resolution.
    """
    items = text.split()
    if len(items) < 6:
        raise ValueError(f"Incomplete epoch: {text!r}")
    year, month, day, hour, minute = (int(v) for v in items[:5])
    if year < 100:
        year += 2000 if year < 80 else 1900
    whole, _, frac = items[5].partition('.')
    nanos = int(frac[:9].ljust(9, '0')) if frac else 0
    return GNSSTime.from_calendar(year, month, day, hour, minute, int(whole or 0),
                                  nanos, time_sys)


def constellation_of(letter: str) -> int:
    """Constellation from a version-line system letter (blank means GPS)"""
    letter = letter.strip()
    if not letter:
        return SYS_GPS
    system = char2sys(letter)
    if system == SYS_NONE:
        raise ValueError(f"Unknown satellite system {letter!r}")
    return system

