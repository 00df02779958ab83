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

"""Core data model.

- **Constants and satellite numbering**: constellation identifiers, time
  system tags, ``SV`` satellite identifiers
- **Time**: ``GNSSTime`` with nanosecond resolution across GPS, GLONASS,
  Galileo, BeiDou, QZSS, IRNSS and UTC time scales
- **Data structures**: epoch keys and flags, merge policies and the payload
  variants of each file type
- **Ephemeris**: tagged navigation message variants
- **Errors**: the ``RinexError`` taxonomy
- **Time series**: the epoch-indexed container

Example Usage:
    >>> from pyrinex.core import *
    >>>
    >>> series = TimeSeries(FileType.OBSERVATION)
    >>> t = GNSSTime.from_calendar(2024, 1, 1, 0, 0, 0)
    >>> series.insert(EpochKey(t), ObservationPayload())
    >>> gps_only = series.filter(by_constellation(SYS_GPS))
"""

from .constants import *
from .satellite_numbering import *
from .time import *
from .data_structures import (ClockPayload, ClockRecord, EpochFlag, EpochKey, FileType,
                              IonexPayload, MergePolicy, MeteoPayload, NavigationPayload,
                              ObservationPayload, ObservationValue, Predicate)
from .ephemeris import *
from .errors import *
from .timeseries import (EpochRange, TimeSeries, by_constellation, by_observable,
                         by_satellite)
