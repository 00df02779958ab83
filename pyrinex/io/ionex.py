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

"""IONEX map decoding and encoding.

The body is a sequence of TEC, RMS and height map blocks. Each block gives
its epoch and then, for every height and latitude, one row of longitude
values as scaled integers (16I5 per line, 9999 for missing values).
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..core.constants import NO_VALUE_IONEX
from ..core.data_structures import EpochKey, IonexPayload
from ..core.errors import MissingMandatoryField
from ..core.time import GNSSTime
from . import grammar
from .header import Header, IonexGrid, label_line
from .lines import BodyDecoder, LineStream

logger = logging.getLogger(__name__)

MAP_KINDS = ('TEC', 'RMS', 'HEIGHT')
ROW_LABEL = 'LAT/LON1/LON2/DLON/H'


class IonexDecoder(BodyDecoder):
    """Decode IONEX map blocks into per-epoch grids"""

    def __init__(self, header: Header):
        super().__init__(header)
        if header.ionex is None:
            raise MissingMandatoryField("IONEX file without grid definition",
                                        file_type='I', version=header.version_text)
        self.grid: IonexGrid = header.ionex

    def decode(self, stream: LineStream) -> List[Tuple[EpochKey, IonexPayload]]:
        """Decode all maps, grouped by epoch in chronological order"""
        maps: Dict[GNSSTime, Dict[str, np.ndarray]] = {}
        while True:
            line = stream.next()
            if line is None:
                break
            label = line[60:].strip()
            if label == 'END OF FILE':
                break
            if not label and not line.strip():
                continue
            if not label.startswith('START OF ') or not label.endswith(' MAP'):
                raise self.error(f"Expected start of map, got {label!r}", stream, line)
            kind = label[9:-4]
            if kind not in MAP_KINDS:
                raise self.error(f"Unknown map type {kind!r}", stream, line)
            time, grid = self._map(kind, stream)
            slot = maps.setdefault(time, {})
            if kind in slot:
                raise self.error(f"Duplicate {kind} map for {time}", stream, line)
            slot[kind] = grid

        result = []
        for time in sorted(maps):
            slot = maps[time]
            result.append((EpochKey(time), IonexPayload(
                tec=slot.get('TEC'), rms=slot.get('RMS'), height=slot.get('HEIGHT'))))
        logger.debug("Decoded IONEX maps for %d epochs", len(result))
        return result

    def _map(self, kind: str, stream: LineStream) -> Tuple[GNSSTime, np.ndarray]:
        grid = self.grid
        heights = grid.height_values
        lats = grid.latitude_values
        n_lon = len(grid.longitude_values)
        values = np.full(grid.shape, np.nan)
        exponent = grid.exponent
        time: Optional[GNSSTime] = None

        while True:
            line = stream.next()
            if line is None:
                raise self.error(f"{kind} map not terminated", stream, None)
            label = line[60:].strip()
            if label == f'END OF {kind} MAP':
                break
            if label == 'EPOCH OF CURRENT MAP':
                try:
                    time = grammar.parse_epoch(line[:36], 'UTC')
                except ValueError as err:
                    raise self.error(f"Invalid map epoch: {err}", stream, line) from None
            elif label == 'EXPONENT':
                exponent = int(line[:6])
            elif label == ROW_LABEL:
                try:
                    lat, lon1, lon2, dlon, hgt = (float(line[2 + i * 6:8 + i * 6]) for i in range(5))
                except ValueError:
                    raise self.error("Invalid map row definition", stream, line) from None
                i_h = self._index(heights, hgt, stream, line)
                i_lat = self._index(lats, lat, stream, line)
                row = self._row(n_lon, stream)
                row[row == NO_VALUE_IONEX] = np.nan
                values[i_h, i_lat] = row * 10.0 ** exponent
            else:
                raise self.error(f"Unexpected record {label!r} in {kind} map", stream, line)

        if time is None:
            raise self.error(f"{kind} map without epoch", stream, None)
        return time, values

    def _index(self, axis: np.ndarray, value: float, stream: LineStream, line: str) -> int:
        hits = np.flatnonzero(np.isclose(axis, value))
        if not len(hits):
            raise self.error(f"Coordinate {value} is not on the map grid", stream, line)
        return int(hits[0])

    def _row(self, count: int, stream: LineStream) -> np.ndarray:
        width = self.layout.value_width
        values: List[float] = []
        while len(values) < count:
            line = stream.next()
            if line is None or _labelled(line):
                raise self.error(f"Map row expects {count} values", stream, line)
            for i in range(0, len(line.rstrip()), width):
                chunk = line[i:i + width]
                if chunk.strip():
                    try:
                        values.append(float(int(chunk)))
                    except ValueError:
                        raise self.error(f"Invalid map value {chunk!r}", stream, line) from None
        if len(values) != count:
            raise self.error(f"Map row expects {count} values, found {len(values)}", stream, None)
        return np.array(values)


def _labelled(line: str) -> bool:
    return any(c.isalpha() for c in line[60:])


def _map_lines(grid: IonexGrid, kind: str, index: int, time: GNSSTime,
               values: np.ndarray, per_line: int) -> List[str]:
    lines = [label_line(f"{index:6d}", f'START OF {kind} MAP'),
             label_line(grid_epoch(time), 'EPOCH OF CURRENT MAP')]
    scale = 10.0 ** grid.exponent
    lon1, lon2, dlon = grid.longitudes
    for i_h, hgt in enumerate(grid.height_values):
        for i_lat, lat in enumerate(grid.latitude_values):
            lines.append(label_line(
                f"  {lat:6.1f}{lon1:6.1f}{lon2:6.1f}{dlon:6.1f}{hgt:6.1f}", ROW_LABEL))
            row = values[i_h, i_lat]
            ints = np.where(np.isnan(row), NO_VALUE_IONEX, np.rint(row / scale)).astype(int)
            for j in range(0, len(ints), per_line):
                lines.append(''.join(f"{v:5d}" for v in ints[j:j + per_line]))
    lines.append(label_line(f"{index:6d}", f'END OF {kind} MAP'))
    return lines


def grid_epoch(time: GNSSTime) -> str:
    return grammar.IonexLayout.format_epoch(time.convert_to('UTC'))


def format_body(header: Header, items: List[Tuple[EpochKey, IonexPayload]]) -> List[str]:
    """IONEX body lines: all TEC maps, then RMS maps, then height maps"""
    grid = header.ionex
    per_line = header.dialect.values_per_line
    lines = []
    for kind in MAP_KINDS:
        index = 0
        for key, payload in items:
            values = getattr(payload, kind.lower())
            if values is None:
                continue
            index += 1
            lines.extend(_map_lines(grid, kind, index, key.time, values, per_line))
    lines.append(label_line('', 'END OF FILE'))
    return lines
