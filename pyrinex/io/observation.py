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

"""Observation record decoding and encoding (RINEX 2, 3 and 4)"""

import logging
import re
from typing import Iterator, List, Optional, Tuple

from ..core.constants import OBS_SCALE
from ..core.data_structures import (EpochFlag, EpochKey, ObservationPayload,
                                    ObservationValue)
from ..core.errors import (EpochSatelliteCountMismatch, MissingMandatoryField,
                           RecordDecodeError)
from ..core.satellite_numbering import SV
from ..core.time import GNSSTime
from . import grammar
from .header import Header
from .lines import BodyDecoder, LineStream

logger = logging.getLogger(__name__)

# RINEX 2 epoch line: ' yy mm dd hh mm ss.sssssss  f'
_V2_EPOCH = re.compile(r'^ [ \d]\d [ \d]\d [ \d]\d [ \d]\d [ \d]\d [ \d]\d\.\d{7}  [0-6]')
# RINEX 3 satellite record: 'G01', 'R 3'
_V3_SATELLITE = re.compile(r'^[A-Z][ \d]\d')


def _indicator(char: str) -> Optional[int]:
    if char in ('', ' '):
        return None
    return int(char)


def _join(group: list, key: EpochKey, payload: ObservationPayload) -> None:
    if key.flag.is_event:
        for held_key, held in group:
            if held_key == key:
                held.events.extend(payload.events)
                return
    group.append((key, payload))


class ObservationDecoder(BodyDecoder):
    """Decode observation epochs from a line stream.

    Parameters
    ----------
    header : Header
        Parsed header: observable catalogs and epoch time system
    """

    def __init__(self, header: Header):
        super().__init__(header)
        if not header.observables:
            raise MissingMandatoryField("Observation header declares no observable types",
                                        file_type='O', version=header.version_text,
                                        dialect=self.layout.dialect)
        self.time_sys = header.epoch_time_system()
        self._last_time: Optional[GNSSTime] = None
        self._untimed: Optional[RecordDecodeError] = None

    def is_epoch_line(self, line: str) -> bool:
        if self.layout.major == 2:
            if _V2_EPOCH.match(line):
                return True
            return not line[:26].strip() and line[28:29] in ('2', '3', '4', '5')
        return line.startswith('>')

    def decode(self, stream: LineStream) -> Iterator[Tuple[EpochKey, ObservationPayload]]:
        """Yield (epoch, payload) pairs in file order"""
        return self._assemble(self._read(stream))

    def decode_crinex(self, records) -> Iterator[Tuple[EpochKey, ObservationPayload]]:
        """Yield (epoch, payload) pairs from decompressed Compact RINEX records"""
        return self._assemble(self._crinex_epoch(record) for record in records)

    def _read(self, stream: LineStream):
        while True:
            stream.skip_blank()
            line = stream.next()
            if line is None:
                return
            yield self._epoch(line, stream)

    def _assemble(self, epochs) -> Iterator[Tuple[EpochKey, ObservationPayload]]:
        """Key decoded epochs.

        Event epochs read before any epoch time is known take the time of the
        next timed epoch. Event epochs falling on one key have their special
        records joined in file order.
        """
        held = []
        group: List[Tuple[EpochKey, ObservationPayload]] = []
        for flag, time, payload in epochs:
            if time is None:
                held.append((flag, payload))
                continue
            if group and time != group[0][0].time:
                yield from group
                group = []
            for held_flag, held_payload in held:
                _join(group, EpochKey(time, held_flag), held_payload)
            held = []
            _join(group, EpochKey(time, flag), payload)
        if held:
            raise self._untimed
        yield from group

    def _epoch(self, line: str, stream: LineStream):
        lay = self.layout
        if lay.major > 2 and not line.startswith('>'):
            if _V3_SATELLITE.match(line):
                raise self.error("Satellite record found where an epoch line was expected",
                                 stream, line, EpochSatelliteCountMismatch)
            raise self.error("Expected epoch line", stream, line)
        try:
            flag = EpochFlag(int(line[lay.flag_col]))
            count = int(line[lay.nsat_cols[0]:lay.nsat_cols[1]])
        except (ValueError, IndexError):
            raise self.error("Cannot read epoch flag / satellite count", stream, line) from None

        time = self._time(line[lay.time_cols[0]:lay.time_cols[1]], flag, stream, line)

        if flag.is_event:
            events = []
            for i in range(count):
                record = stream.next()
                if record is None:
                    raise self.error(f"{count} special records declared, {i} found", stream, None,
                                     EpochSatelliteCountMismatch, expected=count, found=i)
                events.append(record)
            return flag, time, ObservationPayload(events=events)

        clock = self._clock(line, stream)
        if lay.major == 2:
            sats = self._v2_satellites(line, count, stream)
            data = {}
            for i, sv in enumerate(sats):
                data[sv] = self._v2_record(sv, i, count, stream)
        else:
            data = {}
            for i in range(count):
                record = stream.next()
                if record is None or record.startswith('>'):
                    raise self.error(f"Epoch declares {count} satellites, {i} records found",
                                     stream, record, EpochSatelliteCountMismatch,
                                     expected=count, found=i)
                try:
                    sv = SV.parse(record[0:3])
                except ValueError as err:
                    raise self.error(str(err), stream, record) from None
                data[sv] = self._fields(sv, record[lay.data_start:], stream, record)
        return flag, time, ObservationPayload(data, clock)

    def _time(self, text: str, flag: EpochFlag, stream: LineStream,
              line: str) -> Optional[GNSSTime]:
        if not text.strip():
            if not flag.is_event:
                raise self.error("Epoch line without time", stream, line)
            # event epochs may omit the time: previous epoch time, else next
            if self._last_time is None and self._untimed is None:
                self._untimed = self.error("Event epoch without time and no timed epoch",
                                           stream, line)
            return self._last_time
        try:
            time = grammar.parse_epoch(text, self.time_sys)
        except ValueError as err:
            raise self.error(f"Invalid epoch: {err}", stream, line) from None
        self._last_time = time
        return time

    def _clock(self, line: str, stream: LineStream) -> Optional[float]:
        start, end = self.layout.clock_cols
        try:
            return grammar.parse_float(line[start:end])
        except ValueError:
            raise self.error("Invalid receiver clock offset", stream, line) from None

    def _v2_satellites(self, line: str, count: int, stream: LineStream) -> List[SV]:
        lay = self.layout
        sats = []
        current = line
        while True:
            chunk = current[lay.sat_start:lay.sat_start + 3 * lay.sats_per_line]
            for i in range(0, lay.sats_per_line * 3, 3):
                if len(sats) == count:
                    break
                text = chunk[i:i + 3]
                if not text.strip():
                    raise self.error(f"Epoch declares {count} satellites, {len(sats)} listed",
                                     stream, current, EpochSatelliteCountMismatch,
                                     expected=count, found=len(sats))
                try:
                    sats.append(SV.parse(text))
                except ValueError as err:
                    raise self.error(str(err), stream, current) from None
            if len(sats) == count:
                return sats
            current = stream.next()
            if current is None or self.is_epoch_line(current):
                raise self.error("Satellite list continuation line missing", stream, current,
                                 EpochSatelliteCountMismatch, expected=count, found=len(sats))

    def _v2_record(self, sv: SV, index: int, count: int, stream: LineStream):
        codes = self.header.codes(sv.system)
        n_lines = max(1, -(-len(codes) // self.layout.obs_per_line))
        parts = []
        for _ in range(n_lines):
            record = stream.next()
            if record is None or _V2_EPOCH.match(record):
                raise self.error(f"Epoch declares {count} satellites, {index} records found",
                                 stream, record, EpochSatelliteCountMismatch,
                                 expected=count, found=index)
            parts.append(record.ljust(self.layout.field_width * self.layout.obs_per_line))
        return self._fields(sv, ''.join(parts), stream, parts[-1])

    def _fields(self, sv: SV, text: str, stream: LineStream, line: str):
        codes = self.header.codes(sv.system)
        if not codes:
            raise self.error(f"No observable types declared for {sv}", stream, line)
        width = self.layout.field_width
        if text[width * len(codes):].strip():
            raise self.error(f"More fields than the {len(codes)} observables declared for {sv}",
                             stream, line)
        observations = {}
        for k, code in enumerate(codes):
            chunk = text[k * width:(k + 1) * width]
            try:
                value = grammar.parse_float(chunk[:14])
                if value is None:
                    continue
                observations[code] = ObservationValue(value, _indicator(chunk[14:15]),
                                                      _indicator(chunk[15:16]))
            except ValueError:
                raise self.error(f"Invalid {code} field {chunk!r} for {sv}", stream, line) from None
        return observations

    def _crinex_epoch(self, record):
        try:
            flag = EpochFlag(record.flag)
        except ValueError:
            raise RecordDecodeError(f"Invalid epoch flag {record.flag}", file_type='O',
                                    line_number=record.line_number, line=record.epoch_line,
                                    dialect=self.layout.dialect) from None
        stream = LineStream([], record.line_number + 1)
        time = self._time(record.time_text, flag, stream, record.epoch_line)
        if flag.is_event:
            return flag, time, ObservationPayload(events=list(record.events))

        scale = 10 ** (12 if self.layout.major > 2 else 9)
        clock = record.clock / scale if record.clock is not None else None
        data = {}
        for sat, values, flags in zip(record.satellites, record.values, record.flags):
            sv = SV.parse(sat)
            codes = self.header.codes(sv.system)
            flags = flags.ljust(2 * len(codes))
            observations = {}
            for k, code in enumerate(codes):
                if k < len(values) and values[k] is not None:
                    observations[code] = ObservationValue(values[k] / OBS_SCALE,
                                                          _indicator(flags[2 * k]),
                                                          _indicator(flags[2 * k + 1]))
            data[sv] = observations
        return flag, time, ObservationPayload(data, clock)


def _field(obs: Optional[ObservationValue]) -> str:
    if obs is None:
        return ' ' * 16
    lli = ' ' if obs.lli is None else str(obs.lli)
    ssi = ' ' if obs.ssi is None else str(obs.ssi)
    return f"{obs.value:14.3f}{lli}{ssi}"


def format_epoch(header: Header, key: EpochKey, payload: ObservationPayload) -> List[str]:
    """RINEX text lines of one observation epoch"""
    lay = header.dialect
    time = key.time.convert_to(header.epoch_time_system())
    head = lay.format_epoch(time)
    flag = int(key.flag)

    if key.flag.is_event:
        return [f"{head}  {flag}{len(payload.events):3d}"] + list(payload.events)

    sats = list(payload.data)
    lines = []
    if lay.major == 2:
        ids = [str(sv) for sv in sats]
        first = f"{head}  {flag}{len(sats):3d}" + ''.join(ids[:12])
        if payload.clock_offset is not None:
            first = first.ljust(68) + lay.clock_format.format(payload.clock_offset)
        lines.append(first.rstrip())
        for i in range(12, len(ids), 12):
            lines.append((' ' * 32 + ''.join(ids[i:i + 12])).rstrip())
        for sv in sats:
            fields = [_field(payload.data[sv].get(code)) for code in header.codes(sv.system)]
            for i in range(0, max(len(fields), 1), 5):
                lines.append(''.join(fields[i:i + 5]).rstrip())
    else:
        first = f"{head}  {flag}{len(sats):3d}"
        if payload.clock_offset is not None:
            first = first.ljust(41) + lay.clock_format.format(payload.clock_offset)
        lines.append(first.rstrip())
        for sv in sats:
            fields = [_field(payload.data[sv].get(code)) for code in header.codes(sv.system)]
            lines.append((str(sv) + ''.join(fields)).rstrip())
    return lines
