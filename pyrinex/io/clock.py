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

"""Clock RINEX record decoding and encoding"""

import logging
from typing import Iterator, List, Tuple

from ..core.data_structures import ClockPayload, ClockRecord, EpochKey
from ..core.time import GNSSTime
from . import grammar
from .header import Header
from .lines import BodyDecoder, LineStream

logger = logging.getLogger(__name__)

CLOCK_TYPES = ('AR', 'AS', 'CR', 'DR', 'MS')
MAX_VALUES = 6


class ClockDecoder(BodyDecoder):
    """Decode clock data records.

    A record is ``type name epoch count`` followed by up to two values, with
    further values (up to four per line) on one continuation line.
    """

    def __init__(self, header: Header):
        super().__init__(header)
        self.time_sys = header.epoch_time_system()

    def decode(self, stream: LineStream) -> Iterator[Tuple[EpochKey, ClockPayload]]:
        """Yield one single-record payload per data line, in file order"""
        lay = self.layout
        while True:
            stream.skip_blank()
            line = stream.next()
            if line is None:
                return
            items = line.split()
            if len(items) < 10 or items[0] not in CLOCK_TYPES:
                raise self.error("Malformed clock record", stream, line)
            clock_type, name = items[0], items[1]
            try:
                time = grammar.parse_epoch(' '.join(items[2:8]), self.time_sys)
                count = int(items[8])
                values = [grammar.parse_float(v) for v in items[9:]]
            except ValueError as err:
                raise self.error(f"Invalid clock record: {err}", stream, line) from None
            if not 1 <= count <= MAX_VALUES:
                raise self.error(f"Invalid number of clock values {count}", stream, line)

            if count > lay.first_line_values:
                cont = stream.next()
                if cont is None:
                    raise self.error("Clock record truncated", stream, None)
                try:
                    values.extend(grammar.parse_float(v) for v in cont.split())
                except ValueError:
                    raise self.error("Invalid clock value", stream, cont) from None
            if len(values) != count:
                raise self.error(f"{count} clock values declared, {len(values)} found",
                                 stream, line)
            yield EpochKey(time), ClockPayload({(clock_type, name): ClockRecord(*values)})


def format_record(header: Header, time: GNSSTime, clock_type: str, name: str,
                  record: ClockRecord) -> List[str]:
    """RINEX text lines of one clock record"""
    lay = header.dialect
    values = record.values
    epoch = lay.format_epoch(time.convert_to(header.epoch_time_system()))
    head = f"{clock_type:2s} {name:<{lay.name_width}} {epoch}{len(values):3d}   "
    lines = [head + ' '.join(grammar.format_d19(v) for v in values[:lay.first_line_values])]
    rest = values[lay.first_line_values:]
    if rest:
        lines.append(' '.join(grammar.format_d19(v) for v in rest))
    return lines


def format_epoch(header: Header, key: EpochKey, payload: ClockPayload) -> List[str]:
    lines = []
    for (clock_type, name), record in payload.records.items():
        lines.extend(format_record(header, key.time, clock_type, name, record))
    return lines
