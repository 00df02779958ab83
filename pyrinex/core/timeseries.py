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

"""Epoch-indexed time-series container.

:class:`TimeSeries` is the data model handed to collaborators: an ordered
mapping from :class:`EpochKey` to the payload variant of the file type.
Construction from a single file is append-only; merge, filter and decimate
produce new containers.
"""

import bisect
import logging
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd

from .constants import char2sys
from .data_structures import EpochFlag, EpochKey, FileType, MergePolicy
from .errors import NonMonotonicEpoch
from .satellite_numbering import SV
from .time import NANOS, GNSSTime

logger = logging.getLogger(__name__)

_FIRST_FLAG = min(EpochFlag)
_LAST_FLAG = max(EpochFlag)


def _as_key(epoch: Union[EpochKey, GNSSTime]) -> EpochKey:
    if isinstance(epoch, EpochKey):
        return epoch
    if isinstance(epoch, GNSSTime):
        return EpochKey(epoch)
    raise TypeError(f"Expected EpochKey or GNSSTime, got {type(epoch).__name__}")


class EpochRange:
    """Lazy, restartable view over the epochs of a container between two bounds"""

    def __init__(self, series: 'TimeSeries', start: Optional[GNSSTime], end: Optional[GNSSTime]):
        self._series = series
        self.start = start
        self.end = end

    def __iter__(self) -> Iterator[Tuple[EpochKey, object]]:
        keys = self._series._keys
        lo = 0 if self.start is None else bisect.bisect_left(keys, EpochKey(self.start, _FIRST_FLAG))
        hi = len(keys) if self.end is None else bisect.bisect_right(keys, EpochKey(self.end, _LAST_FLAG))
        for i in range(lo, hi):
            key = keys[i]
            yield key, self._series._payloads[key]

    def __len__(self):
        return sum(1 for _ in self)

    def __repr__(self):
        return f"EpochRange({self.start}, {self.end})"


class TimeSeries:
    """Ordered epoch -> payload container.

    Parameters
    ----------
    file_type : FileType
        File type of the payloads held
    append_only : bool
        When True (construction from a file), inserting an epoch earlier than
        the last one raises :class:`NonMonotonicEpoch`
    """

    def __init__(self, file_type: FileType, append_only: bool = True):
        self.file_type = file_type
        self.append_only = append_only
        self._keys: List[EpochKey] = []
        self._payloads: Dict[EpochKey, object] = {}

    @classmethod
    def from_items(cls, file_type: FileType, items, append_only: bool = False) -> 'TimeSeries':
        series = cls(file_type, append_only=append_only)
        for key, payload in items:
            series.insert(key, payload)
        return series

    def insert(self, epoch: Union[EpochKey, GNSSTime], payload,
               policy: MergePolicy = MergePolicy.LAST_WINS) -> None:
        """Insert a payload.

        An epoch equal to an existing key folds the payload into the stored
        one using ``policy``.
        """
        key = _as_key(epoch)
        if key in self._payloads:
            self._payloads[key] = self._payloads[key].merge(payload, policy, str(key))
            return
        if self._keys and key.time < self._keys[-1].time:
            if self.append_only:
                raise NonMonotonicEpoch(
                    f"Epoch {key.time} precedes last inserted epoch {self._keys[-1].time}",
                    file_type=self.file_type.value)
            bisect.insort(self._keys, key)
        elif self._keys and key < self._keys[-1]:
            bisect.insort(self._keys, key)
        else:
            self._keys.append(key)
        self._payloads[key] = payload

    def get(self, epoch: Union[EpochKey, GNSSTime], default=None):
        """Point lookup; a bare GNSSTime looks up the nominal (flag 0) epoch"""
        return self._payloads.get(_as_key(epoch), default)

    def __getitem__(self, epoch):
        return self._payloads[_as_key(epoch)]

    def __contains__(self, epoch) -> bool:
        return _as_key(epoch) in self._payloads

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[Tuple[EpochKey, object]]:
        for key in self._keys:
            yield key, self._payloads[key]

    def items(self) -> Iterator[Tuple[EpochKey, object]]:
        return iter(self)

    def epochs(self) -> List[EpochKey]:
        return list(self._keys)

    @property
    def first(self) -> Optional[Tuple[EpochKey, object]]:
        if not self._keys:
            return None
        return self._keys[0], self._payloads[self._keys[0]]

    @property
    def last(self) -> Optional[Tuple[EpochKey, object]]:
        if not self._keys:
            return None
        return self._keys[-1], self._payloads[self._keys[-1]]

    def range(self, start: Optional[GNSSTime] = None, end: Optional[GNSSTime] = None) -> EpochRange:
        """Epochs with start <= time <= end, None meaning unbounded.

        Empty when start > end or when nothing overlaps.
        """
        return EpochRange(self, start, end)

    def merge(self, other: 'TimeSeries', policy: MergePolicy = MergePolicy.FAIL_ON_CONFLICT) -> 'TimeSeries':
        """Merge two containers of the same file type into a new one.

        Overlapping epochs are merged satellite by satellite and observable by
        observable; differing values are resolved by ``policy``.
        """
        if other.file_type != self.file_type:
            raise ValueError(f"Cannot merge {self.file_type.name} with {other.file_type.name} data")
        policy = MergePolicy.parse(policy)
        result = TimeSeries(self.file_type, append_only=self.append_only)
        mine, theirs = self._keys, other._keys
        i = j = 0
        while i < len(mine) or j < len(theirs):
            if j >= len(theirs) or (i < len(mine) and mine[i] < theirs[j]):
                key, payload = mine[i], self._payloads[mine[i]]
                i += 1
            elif i >= len(mine) or theirs[j] < mine[i]:
                key, payload = theirs[j], other._payloads[theirs[j]]
                j += 1
            else:
                key = mine[i]
                payload = self._payloads[key].merge(other._payloads[theirs[j]], policy, str(key))
                i += 1
                j += 1
            result._keys.append(key)
            result._payloads[key] = payload
        logger.debug("Merged %d + %d epochs into %d", len(self), len(other), len(result))
        return result

    def filter(self, predicate: Callable[[object, Optional[str]], bool]) -> 'TimeSeries':
        """Keep only sub-payloads for which ``predicate(sv, code)`` holds.

        Epochs left empty are dropped.
        """
        result = TimeSeries(self.file_type, append_only=self.append_only)
        for key, payload in self:
            selected = payload.select(predicate)
            if not selected.is_empty():
                result._keys.append(key)
                result._payloads[key] = selected
        return result

    def decimate(self, interval: float) -> 'TimeSeries':
        """Keep the first epoch of each ``interval`` seconds bucket.

        Buckets are aligned on GPS time (week start), independently of the
        first epoch of the container.
        """
        step = int(round(interval * NANOS))
        if step <= 0:
            raise ValueError(f"Decimation interval must be positive, got {interval}")
        result = TimeSeries(self.file_type, append_only=self.append_only)
        last_bucket = None
        for key, payload in self:
            bucket = key.time.gpst_nanoseconds() // step
            if bucket == last_bucket:
                continue
            last_bucket = bucket
            result._keys.append(key)
            result._payloads[key] = payload
        return result

    def to_dataframe(self) -> pd.DataFrame:
        """Flatten into a long-format DataFrame (Observation, Meteo, Clock)"""
        rows = []
        if self.file_type is FileType.OBSERVATION:
            columns = ['time', 'flag', 'sv', 'code', 'value', 'lli', 'ssi']
            for key, payload in self:
                when = key.time.to_datetime()
                for sv, code in payload.keys():
                    obs = payload.get(sv, code)
                    rows.append((when, int(key.flag), str(sv), code, obs.value, obs.lli, obs.ssi))
        elif self.file_type is FileType.METEO:
            columns = ['time', 'sensor', 'value']
            for key, payload in self:
                when = key.time.to_datetime()
                rows.extend((when, code, value) for code, value in payload.values.items())
        elif self.file_type is FileType.CLOCK:
            columns = ['time', 'clock_type', 'name', 'bias', 'bias_sigma', 'rate',
                       'rate_sigma', 'accel', 'accel_sigma']
            for key, payload in self:
                when = key.time.to_datetime()
                for (clock_type, name), rec in payload.records.items():
                    rows.append((when, clock_type, name, rec.bias, rec.bias_sigma, rec.rate,
                                 rec.rate_sigma, rec.accel, rec.accel_sigma))
        else:
            raise TypeError(f"{self.file_type.name} data has no tabular form")
        return pd.DataFrame(rows, columns=columns)

    def __eq__(self, other):
        if not isinstance(other, TimeSeries):
            return NotImplemented
        return (self.file_type == other.file_type
                and self._keys == other._keys
                and all(self._payloads[k] == other._payloads[k] for k in self._keys))

    def __repr__(self):
        if not self._keys:
            return f"TimeSeries({self.file_type.name}, empty)"
        return (f"TimeSeries({self.file_type.name}, {len(self)} epochs, "
                f"{self._keys[0].time} .. {self._keys[-1].time})")


def by_constellation(*systems) -> Callable[[object, Optional[str]], bool]:
    """Predicate keeping satellites of the given constellations ('G' or SYS_GPS)"""
    wanted = {char2sys(s) if isinstance(s, str) else s for s in systems}
    return lambda sv, code: isinstance(sv, SV) and sv.system in wanted


def by_satellite(*satellites) -> Callable[[object, Optional[str]], bool]:
    """Predicate keeping the given satellites ('G01' or SV)"""
    wanted = {SV.parse(s) if isinstance(s, str) else s for s in satellites}
    return lambda sv, code: sv in wanted


def by_observable(*codes) -> Callable[[object, Optional[str]], bool]:
    """Predicate keeping the given observable codes (or sensor/map names)"""
    wanted = set(codes)
    return lambda sv, code: code in wanted
