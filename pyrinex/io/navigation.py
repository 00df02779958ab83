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

"""Navigation record decoding and encoding (RINEX 2, 3 and 4).

A record is an epoch line (satellite, time of clock, three clock values)
followed by broadcast orbit lines whose count and content depend on
constellation and message type. RINEX 4 wraps records in ``> EPH`` frames
and adds system time offset, Earth orientation and ionosphere frames, which
are skipped.
"""

import logging
from typing import Iterator, List, Optional, Tuple

from ..core.constants import SYS_GAL, sys2timesys
from ..core.data_structures import EpochKey, NavigationPayload
from ..core.ephemeris import (NavMessage, NavMessageType, default_message_type,
                              ephemeris_class, galileo_message_type)
from ..core.errors import UnsupportedDialect
from ..core.satellite_numbering import SV
from . import grammar
from .header import Header
from .lines import BodyDecoder, LineStream

logger = logging.getLogger(__name__)

# RINEX 4 frames that are not ephemerides
SKIPPED_FRAMES = ('STO', 'EOP', 'ION')


class NavigationDecoder(BodyDecoder):
    """Decode navigation messages from a line stream"""

    def __init__(self, header: Header):
        super().__init__(header)
        self.minor = header.version[1]

    def decode(self, stream: LineStream) -> Iterator[NavMessage]:
        """Yield messages in file order"""
        lay = self.layout
        while True:
            stream.skip_blank()
            line = stream.next()
            if line is None:
                return
            msg_type = None
            if lay.frame_marker:
                if not line.startswith(lay.frame_marker):
                    raise self.error("Expected '>' record frame line", stream, line)
                frame = line[2:5]
                if frame in SKIPPED_FRAMES:
                    logger.warning("Skipping RINEX 4 %s frame at line %d", frame,
                                   stream.line_number)
                    self._skip_frame(stream)
                    continue
                if frame != 'EPH':
                    raise self.error(f"Unknown record frame {frame!r}", stream, line)
                try:
                    msg_type = NavMessageType(line[10:14].strip())
                except ValueError:
                    raise self.error(f"Unknown message type {line[10:14].strip()!r}",
                                     stream, line) from None
                line = stream.next()
                if line is None:
                    raise self.error("Frame without ephemeris record", stream, None)
            yield self._record(line, msg_type, stream)

    def _skip_frame(self, stream: LineStream) -> None:
        while True:
            nxt = stream.peek()
            if nxt is None or nxt.startswith(self.layout.frame_marker):
                return
            stream.next()

    def _sv(self, line: str, stream: LineStream) -> SV:
        lay = self.layout
        text = line[:lay.id_width]
        try:
            if lay.major == 2:
                return SV(self.header.constellation, int(text))
            return SV.parse(text)
        except ValueError:
            raise self.error(f"Invalid satellite identifier {text!r}", stream, line) from None

    def _values(self, line: str, start: int, count: int, stream: LineStream) -> List[Optional[float]]:
        width = self.layout.field_width
        values = []
        for i in range(count):
            chunk = line[start + i * width:start + (i + 1) * width]
            try:
                values.append(grammar.parse_float(chunk))
            except ValueError:
                raise self.error(f"Invalid numeric field {chunk!r}", stream, line) from None
        return values

    def _record(self, line: str, msg_type: Optional[NavMessageType],
                stream: LineStream) -> NavMessage:
        lay = self.layout
        sv = self._sv(line, stream)
        time_sys = sys2timesys(sv.system)
        try:
            toc = grammar.parse_epoch(line[lay.id_width:lay.value_start], time_sys)
        except ValueError as err:
            raise self.error(f"Invalid time of clock: {err}", stream, line) from None
        clock = self._values(line, lay.value_start, 3, stream)
        if any(v is None for v in clock):
            raise self.error("Missing clock parameter", stream, line)

        if msg_type is None:
            msg_type = default_message_type(sv)
        try:
            layout = grammar.orbit_fields(lay, sv.system, msg_type, self.minor)
        except UnsupportedDialect as err:
            raise err.with_context(file_type='N', version=self.header.version_text,
                                   line_number=stream.line_number, line=line)

        orbits = {}
        for names in layout:
            orbit_line = stream.next()
            if orbit_line is None or orbit_line[:lay.indent].strip():
                raise self.error(f"{sv} {msg_type.value} record expects {len(layout)} orbit lines",
                                 stream, orbit_line)
            values = self._values(orbit_line, lay.indent, len(names), stream)
            for name, value in zip(names, values):
                if name is not None and value is not None:
                    orbits[name] = value

        if sv.system == SYS_GAL and msg_type in (NavMessageType.INAV, NavMessageType.FNAV) \
                and lay.major < 4 and 'data_src' in orbits:
            msg_type = galileo_message_type(orbits['data_src'])

        cls = ephemeris_class(msg_type)
        return cls(sv, msg_type, toc, clock[0], clock[1], clock[2], orbits)


def build_payloads(messages: List[NavMessage]) -> List[Tuple[EpochKey, NavigationPayload]]:
    """Group messages by time of clock, in chronological order"""
    ordered = sorted(messages, key=lambda m: m.toc.gpst_nanoseconds())
    result: List[Tuple[EpochKey, NavigationPayload]] = []
    for msg in ordered:
        key = EpochKey(msg.toc)
        if not result or result[-1][0] != key:
            result.append((key, NavigationPayload()))
        result[-1][1].add(msg)
    return result


def format_message(header: Header, msg: NavMessage) -> List[str]:
    """RINEX text lines of one navigation message"""
    lay = header.dialect
    layout = grammar.orbit_fields(lay, msg.sv.system, msg.msg_type, header.version[1])
    if lay.major < 4 and msg.msg_type is not default_message_type(msg.sv) and not (
            msg.sv.system == SYS_GAL and msg.msg_type is NavMessageType.FNAV):
        raise UnsupportedDialect(f"{msg.msg_type.value} messages need RINEX 4",
                                 file_type='N', version=header.version_text,
                                 dialect=lay.dialect)
    lines = []
    if lay.frame_marker:
        lines.append(f"> EPH {msg.sv} {msg.msg_type.value}")
    epoch = lay.format_epoch(msg.toc)
    ident = f"{msg.sv.prn:2d}" if lay.major == 2 else str(msg.sv)
    clock = ''.join(grammar.format_d19(v) for v in
                    (msg.clock_bias, msg.clock_drift, msg.clock_drift_rate))
    lines.append(f"{ident} {epoch}{clock}")
    for names in layout:
        values = ''.join(grammar.format_d19(msg.orbits.get(name) if name else None)
                         for name in names)
        lines.append((' ' * lay.indent + values).rstrip())
    return lines
