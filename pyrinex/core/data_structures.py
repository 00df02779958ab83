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

"""Core data structures for RINEX records"""

import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

from .errors import MergeConflict
from .satellite_numbering import SV
from .time import GNSSTime

logger = logging.getLogger(__name__)

# Sub-payload selector: receives (satellite or station, observable code or None)
Predicate = Callable[[object, Optional[str]], bool]


class FileType(Enum):
    """RINEX file types.

    Attributes
    ----------
    OBSERVATION : str
        Observation data (``O``)
    NAVIGATION : str
        Broadcast navigation messages (``N``, RINEX 2 ``G``/``H``)
    METEO : str
        Meteorological data (``M``)
    IONEX : str
        Ionosphere maps (``I``)
    CLOCK : str
        Clock data (``C``)
    """
    OBSERVATION = 'O'
    NAVIGATION = 'N'
    METEO = 'M'
    IONEX = 'I'
    CLOCK = 'C'

    @property
    def label(self) -> str:
        return {
            FileType.OBSERVATION: 'OBSERVATION DATA',
            FileType.NAVIGATION: 'NAVIGATION DATA',
            FileType.METEO: 'METEOROLOGICAL DATA',
            FileType.IONEX: 'IONOSPHERE MAPS',
            FileType.CLOCK: 'CLOCK DATA',
        }[self]


class EpochFlag(IntEnum):
    """Epoch status flag as written on observation epoch lines"""
    OK = 0
    POWER_FAILURE = 1
    ANTENNA_BEING_MOVED = 2
    NEW_SITE_OCCUPATION = 3
    HEADER_INFORMATION_FOLLOWS = 4
    EXTERNAL_EVENT = 5
    CYCLE_SLIP = 6

    @property
    def is_event(self) -> bool:
        """Special event epochs carry header/comment records instead of data"""
        return 2 <= self.value <= 5


class MergePolicy(Enum):
    """Resolution of two differing values at the same epoch"""
    LAST_WINS = 'last-wins'
    FIRST_WINS = 'first-wins'
    FAIL_ON_CONFLICT = 'fail-on-conflict'

    @classmethod
    def parse(cls, value) -> 'MergePolicy':
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace('_', '-')
        for policy in cls:
            if policy.value == text:
                return policy
        raise ValueError(f"Unknown merge policy: {value!r}")


@dataclass(frozen=True, order=True)
class EpochKey:
    """Container key: timestamp plus epoch status flag.

    Keys order by timestamp (absolute instant, any time system) then flag.
    """
    time: GNSSTime
    flag: EpochFlag = EpochFlag.OK

    def __str__(self):
        return f"{self.time} flag={int(self.flag)}"


def resolve_conflict(first, second, policy: MergePolicy, where: str):
    """Pick between two values for the same sub-payload according to policy"""
    if first == second:
        return first
    if policy is MergePolicy.FAIL_ON_CONFLICT:
        raise MergeConflict(f"Conflicting values for {where}: {first!r} != {second!r}")
    logger.warning("Merge conflict on %s resolved by %s", where, policy.value)
    return second if policy is MergePolicy.LAST_WINS else first


@dataclass(frozen=True)
class ObservationValue:
    """Single observable measurement.

    Attributes
    ----------
    value : float
        Measured value (meters, cycles, Hz or dB-Hz depending on observable)
    lli : int or None
        Loss of lock indicator (0-7), None when blank
    ssi : int or None
        Signal strength indicator (1-9), None when blank
    """
    value: float
    lli: Optional[int] = None
    ssi: Optional[int] = None


@dataclass
class ObservationPayload:
    """Observations of one epoch.

    Attributes
    ----------
    data : dict
        SV -> observable code -> :class:`ObservationValue`
    clock_offset : float or None
        Receiver clock offset in seconds
    events : list of str
        Special records following an event epoch (flags 2-5), verbatim
    """
    data: Dict[SV, Dict[str, ObservationValue]] = field(default_factory=dict)
    clock_offset: Optional[float] = None
    events: List[str] = field(default_factory=list)

    def keys(self) -> Iterator[Tuple[SV, str]]:
        for sv, observations in self.data.items():
            for code in observations:
                yield sv, code

    @property
    def satellites(self) -> List[SV]:
        return sorted(self.data)

    def get(self, sv: SV, code: str) -> Optional[ObservationValue]:
        return self.data.get(sv, {}).get(code)

    def __getitem__(self, sv: SV) -> Dict[str, ObservationValue]:
        return self.data[sv]

    def is_empty(self) -> bool:
        return not any(self.data.values()) and not self.events

    def select(self, predicate: Predicate) -> 'ObservationPayload':
        data = {}
        for sv, observations in self.data.items():
            kept = {code: obs for code, obs in observations.items() if predicate(sv, code)}
            if kept:
                data[sv] = kept
        clock = self.clock_offset if data else None
        return ObservationPayload(data, clock, list(self.events))

    def merge(self, other: 'ObservationPayload', policy: MergePolicy,
              where: str = '') -> 'ObservationPayload':
        data = {sv: dict(obs) for sv, obs in self.data.items()}
        for sv, observations in other.data.items():
            mine = data.setdefault(sv, {})
            for code, obs in observations.items():
                if code in mine:
                    mine[code] = resolve_conflict(mine[code], obs, policy, f"{where} {sv} {code}")
                else:
                    mine[code] = obs
        clock = self.clock_offset
        if clock is None:
            clock = other.clock_offset
        elif other.clock_offset is not None:
            clock = resolve_conflict(clock, other.clock_offset, policy, f"{where} clock offset")
        events = self.events
        if not events:
            events = other.events
        elif other.events:
            events = resolve_conflict(events, other.events, policy, f"{where} event records")
        return ObservationPayload(data, clock, list(events))


@dataclass
class MeteoPayload:
    """Meteorological readings of one epoch: sensor type (PR, TD, HR...) -> value"""
    values: Dict[str, float] = field(default_factory=dict)

    def keys(self) -> Iterator[Tuple[None, str]]:
        for code in self.values:
            yield None, code

    def __getitem__(self, code: str) -> float:
        return self.values[code]

    def is_empty(self) -> bool:
        return not self.values

    def select(self, predicate: Predicate) -> 'MeteoPayload':
        return MeteoPayload({k: v for k, v in self.values.items() if predicate(None, k)})

    def merge(self, other: 'MeteoPayload', policy: MergePolicy, where: str = '') -> 'MeteoPayload':
        values = dict(self.values)
        for code, value in other.values.items():
            if code in values:
                values[code] = resolve_conflict(values[code], value, policy, f"{where} {code}")
            else:
                values[code] = value
        return MeteoPayload(values)


class _Grid:
    """Wrapper giving numpy grids NaN-aware value equality"""

    __slots__ = ('array',)

    def __init__(self, array):
        self.array = array

    def __eq__(self, other):
        return np.array_equal(self.array, other.array, equal_nan=True)

    def __repr__(self):
        return f"grid{self.array.shape}"


@dataclass(eq=False)
class IonexPayload:
    """Ionosphere maps of one epoch.

    Attributes
    ----------
    tec : np.ndarray
        Total electron content in TECU, shape (n_heights, n_lat, n_lon),
        NaN where the file holds no value
    rms : np.ndarray or None
        RMS error of the TEC values, same shape, when RMS maps are present
    height : np.ndarray or None
        Height map in km, when height maps are present
    """
    tec: Optional[np.ndarray] = None
    rms: Optional[np.ndarray] = None
    height: Optional[np.ndarray] = None

    MAPS = ('TEC', 'RMS', 'HEIGHT')

    def _maps(self) -> Dict[str, np.ndarray]:
        maps = {'TEC': self.tec, 'RMS': self.rms, 'HEIGHT': self.height}
        return {k: v for k, v in maps.items() if v is not None}

    def keys(self) -> Iterator[Tuple[None, str]]:
        for name in self._maps():
            yield None, name

    def is_empty(self) -> bool:
        return not self._maps()

    def select(self, predicate: Predicate) -> 'IonexPayload':
        kept = {k.lower(): v for k, v in self._maps().items() if predicate(None, k)}
        return IonexPayload(**kept)

    def merge(self, other: 'IonexPayload', policy: MergePolicy, where: str = '') -> 'IonexPayload':
        maps = self._maps()
        for name, grid in other._maps().items():
            if name in maps:
                maps[name] = resolve_conflict(_Grid(maps[name]), _Grid(grid), policy,
                                              f"{where} {name} map").array
            else:
                maps[name] = grid
        return IonexPayload(**{k.lower(): v for k, v in maps.items()})

    def __eq__(self, other):
        if not isinstance(other, IonexPayload):
            return NotImplemented
        mine, theirs = self._maps(), other._maps()
        if mine.keys() != theirs.keys():
            return False
        return all(_Grid(mine[k]) == _Grid(theirs[k]) for k in mine)


@dataclass(frozen=True)
class ClockRecord:
    """Clock solution values (seconds, s/s, s/s^2) and their sigmas"""
    bias: float
    bias_sigma: Optional[float] = None
    rate: Optional[float] = None
    rate_sigma: Optional[float] = None
    accel: Optional[float] = None
    accel_sigma: Optional[float] = None

    @property
    def values(self) -> Tuple[float, ...]:
        """Values as written in the file, trailing blanks dropped"""
        values = [self.bias, self.bias_sigma, self.rate, self.rate_sigma,
                  self.accel, self.accel_sigma]
        while values and values[-1] is None:
            values.pop()
        return tuple(values)


@dataclass
class ClockPayload:
    """Clock records of one epoch: (clock type, receiver/satellite name) -> record"""
    records: Dict[Tuple[str, str], ClockRecord] = field(default_factory=dict)

    @staticmethod
    def _subject(clock_type: str, name: str):
        if clock_type == 'AS':
            try:
                return SV.parse(name)
            except ValueError:
                return name
        return name

    def keys(self) -> Iterator[tuple]:
        for clock_type, name in self.records:
            yield self._subject(clock_type, name), clock_type

    def __getitem__(self, key: Tuple[str, str]) -> ClockRecord:
        return self.records[key]

    def is_empty(self) -> bool:
        return not self.records

    def select(self, predicate: Predicate) -> 'ClockPayload':
        return ClockPayload({
            key: rec for key, rec in self.records.items()
            if predicate(self._subject(*key), key[0])
        })

    def merge(self, other: 'ClockPayload', policy: MergePolicy, where: str = '') -> 'ClockPayload':
        records = dict(self.records)
        for key, rec in other.records.items():
            if key in records:
                records[key] = resolve_conflict(records[key], rec, policy, f"{where} {key[0]} {key[1]}")
            else:
                records[key] = rec
        return ClockPayload(records)


@dataclass
class NavigationPayload:
    """Navigation messages sharing one time of clock: SV -> messages.

    One satellite may broadcast several message types for the same epoch
    (e.g. Galileo I/NAV and F/NAV, GPS LNAV and CNAV).
    """
    messages: Dict[SV, list] = field(default_factory=dict)

    def keys(self) -> Iterator[Tuple[SV, None]]:
        for sv in self.messages:
            yield sv, None

    def __getitem__(self, sv: SV) -> list:
        return self.messages[sv]

    def is_empty(self) -> bool:
        return not any(self.messages.values())

    def add(self, message) -> None:
        self.messages.setdefault(message.sv, []).append(message)

    def select(self, predicate: Predicate) -> 'NavigationPayload':
        return NavigationPayload({
            sv: list(msgs) for sv, msgs in self.messages.items() if predicate(sv, None)
        })

    def merge(self, other: 'NavigationPayload', policy: MergePolicy,
              where: str = '') -> 'NavigationPayload':
        messages = {sv: list(msgs) for sv, msgs in self.messages.items()}
        for sv, msgs in other.messages.items():
            mine = messages.setdefault(sv, [])
            for msg in msgs:
                if msg in mine:
                    continue
                for i, existing in enumerate(mine):
                    if existing.identity == msg.identity:
                        mine[i] = resolve_conflict(existing, msg, policy,
                                                   f"{where} {sv} {msg.msg_type.value}")
                        break
                else:
                    mine.append(msg)
        return NavigationPayload(messages)

    def __eq__(self, other):
        if not isinstance(other, NavigationPayload):
            return NotImplemented
        if self.messages.keys() != other.messages.keys():
            return False
        key = lambda m: repr(m.identity)
        return all(sorted(self.messages[sv], key=key) == sorted(other.messages[sv], key=key)
                   for sv in self.messages)
