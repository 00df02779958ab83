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

"""Broadcast navigation messages as a tagged variant.

Each record decoded from a navigation file becomes a :class:`NavMessage`
subclass chosen by its message type: Keplerian messages (GPS, Galileo,
BeiDou, QZSS, NavIC), GLONASS FDMA state vectors and SBAS GEO state vectors.
The broadcast orbit parameters are kept by name in ``orbits``; the set of
names depends on constellation and message type.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import numpy as np

from .constants import SYS_BDS, SYS_GAL, SYS_GLO, SYS_SBS
from .satellite_numbering import SV
from .time import GNSSTime


class NavMessageType(Enum):
    """Navigation message types (RINEX 4 naming)"""
    LNAV = 'LNAV'    # GPS/QZSS/NavIC legacy
    CNAV = 'CNAV'    # GPS/QZSS civil
    CNV2 = 'CNV2'    # GPS/QZSS L1C
    INAV = 'INAV'    # Galileo I/NAV
    FNAV = 'FNAV'    # Galileo F/NAV
    D1 = 'D1'        # BeiDou MEO/IGSO
    D2 = 'D2'        # BeiDou GEO
    CNV1 = 'CNV1'    # BeiDou B1C
    CNV3 = 'CNV3'    # BeiDou B2b
    FDMA = 'FDMA'    # GLONASS
    SBAS = 'SBAS'    # SBAS GEO


@dataclass
class NavMessage:
    """Common part of every broadcast navigation message.

    Attributes
    ----------
    sv : SV
        Broadcasting satellite
    msg_type : NavMessageType
        Message type tag
    toc : GNSSTime
        Time of clock, in the constellation time system
    clock_bias : float
        SV clock bias (s)
    clock_drift : float
        SV clock drift (s/s)
    clock_drift_rate : float
        SV clock drift rate (s/s^2)
    orbits : dict
        Broadcast orbit parameters by name, in file order
    """
    sv: SV
    msg_type: NavMessageType
    toc: GNSSTime
    clock_bias: float
    clock_drift: float
    clock_drift_rate: float
    orbits: Dict[str, float] = field(default_factory=dict)

    # Orbit entries telling apart two uploads of one message type at one toc
    IDENTITY_FIELDS = ('iode', 'iodnav', 'aode', 'iodc', 'data_src', 'transmission_time')

    @property
    def identity(self) -> tuple:
        """Message type plus issue of data, data source and transmission time"""
        return (self.msg_type.value,) + tuple(self.orbits.get(name)
                                              for name in self.IDENTITY_FIELDS)

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return self.orbits.get(name, default)

    def __getitem__(self, name: str) -> float:
        return self.orbits[name]


def _orbit(name: str, doc: str):
    return property(lambda self: self.orbits.get(name), doc=doc)


@dataclass
class KeplerEphemeris(NavMessage):
    """Keplerian ephemeris (GPS, Galileo, BeiDou, QZSS, NavIC)"""

    toe = _orbit('toe', "Time of ephemeris (seconds of week)")
    sqrt_a = _orbit('sqrt_a', "Square root of semi-major axis (m^1/2)")
    e = _orbit('e', "Eccentricity")
    i0 = _orbit('i0', "Inclination at reference time (rad)")
    omega0 = _orbit('omega0', "Longitude of ascending node (rad)")
    omega = _orbit('omega', "Argument of perigee (rad)")
    m0 = _orbit('m0', "Mean anomaly at reference time (rad)")
    delta_n = _orbit('delta_n', "Mean motion difference (rad/s)")
    omega_dot = _orbit('omega_dot', "Rate of right ascension (rad/s)")
    idot = _orbit('idot', "Rate of inclination (rad/s)")

    @property
    def week(self) -> Optional[int]:
        week = self.orbits.get('week')
        return int(week) if week is not None else None

    @property
    def toe_time(self) -> Optional[GNSSTime]:
        """Time of ephemeris as GNSSTime

        Galileo weeks in RINEX are aligned to GPS weeks; BeiDou weeks count
        from BDT0.
        """
        if self.week is None or self.toe is None:
            return None
        time_sys = 'BDS' if self.sv.system == SYS_BDS else 'GPS'
        return GNSSTime(self.week, self.toe, time_sys)

    @property
    def health(self) -> Optional[float]:
        return self.orbits.get('health')


@dataclass
class GlonassEphemeris(NavMessage):
    """GLONASS FDMA ephemeris.

    RINEX stores -TauN, +GammaN and the message frame time in the clock
    slots; positions are in km, velocities in km/s, accelerations in km/s^2.
    """

    @property
    def tau_n(self) -> float:
        return -self.clock_bias

    @property
    def gamma_n(self) -> float:
        return self.clock_drift

    @property
    def frame_time(self) -> float:
        return self.clock_drift_rate

    @property
    def identity(self) -> tuple:
        return (self.msg_type.value, self.frame_time)

    @property
    def position(self) -> np.ndarray:
        return np.array([self.orbits['x'], self.orbits['y'], self.orbits['z']])

    @property
    def velocity(self) -> np.ndarray:
        return np.array([self.orbits['vel_x'], self.orbits['vel_y'], self.orbits['vel_z']])

    @property
    def acceleration(self) -> np.ndarray:
        return np.array([self.orbits['accel_x'], self.orbits['accel_y'], self.orbits['accel_z']])

    @property
    def freq_num(self) -> int:
        return int(self.orbits['freq_num'])

    @property
    def health(self) -> float:
        return self.orbits['health']


@dataclass
class SbasEphemeris(NavMessage):
    """SBAS GEO ephemeris; clock slots hold aGf0, aGf1 and transmission time"""

    @property
    def transmission_time(self) -> float:
        return self.clock_drift_rate

    @property
    def identity(self) -> tuple:
        return (self.msg_type.value, self.transmission_time, self.orbits.get('iodn'))

    @property
    def position(self) -> np.ndarray:
        return np.array([self.orbits['x'], self.orbits['y'], self.orbits['z']])

    @property
    def velocity(self) -> np.ndarray:
        return np.array([self.orbits['vel_x'], self.orbits['vel_y'], self.orbits['vel_z']])

    @property
    def ura(self) -> float:
        return self.orbits['ura']


def ephemeris_class(msg_type: NavMessageType):
    """Variant class carrying messages of the given type"""
    if msg_type is NavMessageType.FDMA:
        return GlonassEphemeris
    if msg_type is NavMessageType.SBAS:
        return SbasEphemeris
    return KeplerEphemeris


def default_message_type(sv: SV) -> NavMessageType:
    """Message type implied by a RINEX 2/3 record of the given satellite"""
    if sv.system == SYS_GLO:
        return NavMessageType.FDMA
    if sv.system == SYS_SBS:
        return NavMessageType.SBAS
    if sv.system == SYS_GAL:
        return NavMessageType.INAV
    if sv.system == SYS_BDS:
        # GEO satellites broadcast D2: PRN 1-5 and 59-63
        return NavMessageType.D2 if sv.prn <= 5 or sv.prn >= 59 else NavMessageType.D1
    return NavMessageType.LNAV


def galileo_message_type(data_source: float) -> NavMessageType:
    """I/NAV or F/NAV from the Galileo data-source bits (bit 1 = F/NAV E5a)"""
    bits = int(data_source)
    if bits & 0b010:
        return NavMessageType.FNAV
    return NavMessageType.INAV
