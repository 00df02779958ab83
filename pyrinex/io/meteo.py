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

"""Meteorological record decoding and encoding"""

import logging
from typing import Iterator, List, Tuple

from ..core.constants import SYS_ALL
from ..core.data_structures import EpochKey, MeteoPayload
from ..core.errors import MissingMandatoryField
from ..logger import TRACE
from . import grammar
from .header import Header
from .lines import BodyDecoder, LineStream

logger = logging.getLogger(__name__)


class MeteoDecoder(BodyDecoder):
    """Decode meteorological epochs: one epoch line plus continuation lines"""

    def __init__(self, header: Header):
        super().__init__(header)
        self.codes = header.observables.get(SYS_ALL, [])
        if not self.codes:
            raise MissingMandatoryField("Meteorological file without '# / TYPES OF OBSERV'",
                                        file_type='M', version=header.version_text,
                                        dialect=self.layout.dialect)
        self.time_sys = header.epoch_time_system()

    def _n_lines(self) -> int:
        lay = self.layout
        extra = max(len(self.codes) - lay.first_line, 0)
        return 1 + -(-extra // lay.per_line)

    def decode(self, stream: LineStream) -> Iterator[Tuple[EpochKey, MeteoPayload]]:
        lay = self.layout
        while True:
            stream.skip_blank()
            line = stream.next()
            if line is None:
                return
            try:
                time = grammar.parse_epoch(line[:lay.epoch_width], self.time_sys)
            except ValueError as err:
                raise self.error(f"Invalid epoch: {err}", stream, line) from None

            fields = [line[lay.epoch_width + i * lay.field_width:
                           lay.epoch_width + (i + 1) * lay.field_width]
                      for i in range(lay.first_line)]
            for _ in range(self._n_lines() - 1):
                cont = stream.next()
                if cont is None:
                    raise self.error("Epoch truncated before all observables", stream, None)
                fields.extend(cont[lay.indent + i * lay.field_width:
                                   lay.indent + (i + 1) * lay.field_width]
                              for i in range(lay.per_line))

            values = {}
            for code, text in zip(self.codes, fields):
                try:
                    value = grammar.parse_float(text)
                except ValueError:
                    raise self.error(f"Invalid {code} value {text!r}", stream, line) from None
                if value is not None:
                    values[code] = value
            logger.log(TRACE, "Meteo epoch %s: %d values", time, len(values))
            yield EpochKey(time), MeteoPayload(values)


def format_epoch(header: Header, key: EpochKey, payload: MeteoPayload) -> List[str]:
    """RINEX text lines of one meteorological epoch"""
    lay = header.dialect
    codes = header.observables.get(SYS_ALL, [])
    fields = []
    for code in codes:
        value = payload.values.get(code)
        fields.append(' ' * lay.field_width if value is None else f"{value:7.1f}")
    time = key.time.convert_to(header.epoch_time_system())
    lines = [(lay.format_epoch(time) + ''.join(fields[:lay.first_line])).rstrip()]
    for i in range(lay.first_line, len(fields), lay.per_line):
        lines.append((' ' * lay.indent + ''.join(fields[i:i + lay.per_line])).rstrip())
    return lines
