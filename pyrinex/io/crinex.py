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

"""Compact RINEX (Hatanaka) decompression and compression.

Compact RINEX stores observation files as differences:

- the epoch line is written as a character difference against the previous
  epoch line (``' '`` unchanged, ``'&'`` becomes a blank); a line starting
  with ``'&'`` (CRINEX 1) or ``'>'`` (CRINEX 3) is written in full and resets
  every satellite and clock state;
- the receiver clock offset follows on its own line (empty when absent);
- each satellite gets one line of space separated integers, one per
  observable: ``N&value`` starts a new arc of difference order N, a bare
  integer is the N-th order difference, an empty field is a missing value
  and breaks the arc. The LLI/SSI characters come after the values as a
  character difference against the previous ones of that satellite.

Integers are the observation digits with the decimal point removed
(units of 1e-3), the clock offset likewise (1e-9 s for CRINEX 1, 1e-12 s for
CRINEX 3).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.constants import OBS_DECIMALS, OBS_FIELD_WIDTH
from ..core.data_structures import FileType
from ..core.errors import (DesyncError, MissingMandatoryField,
                           RecordDecodeError, UnsupportedDialect)
from ..core.satellite_numbering import SV
from ..logger import TRACE
from .header import (CRINEX_PROGRAM_LABEL, CRINEX_VERSION_LABEL, CrinexInfo,
                     Header, HeaderParser)
from .lines import LineStream

logger = logging.getLogger(__name__)

DEFAULT_ORDER = 3

# CRINEX version -> (init marker, first satellite column, clock decimals)
_LAYOUTS = {
    '1': ('&', 32, 9),
    '3': ('>', 41, 12),
}


def apply_text_diff(old: str, diff: str) -> str:
    """Rebuild a line from its character difference against ``old``"""
    chars = list(old.ljust(len(diff)))
    for i, c in enumerate(diff):
        if c == '&':
            chars[i] = ' '
        elif c != ' ':
            chars[i] = c
    return ''.join(chars).rstrip()


def text_diff(old: str, new: str) -> str:
    """Character difference of ``new`` against ``old``"""
    width = max(len(old), len(new))
    old, new = old.ljust(width), new.ljust(width)
    out = []
    for o, n in zip(old, new):
        if o == n:
            out.append(' ')
        elif n == ' ':
            out.append('&')
        else:
            out.append(n)
    return ''.join(out).rstrip()


def to_scaled(text: str, decimals: int) -> int:
    """Fixed point text to an integer count of 10**-decimals units"""
    text = text.strip()
    whole, _, frac = text.partition('.')
    if len(frac) > decimals:
        raise ValueError(f"{text!r} has more than {decimals} decimals")
    if whole + frac in ('', '-', '+'):
        raise ValueError(f"Not a number: {text!r}")
    return int(whole + frac.ljust(decimals, '0'))


def format_scaled(value: int, decimals: int, width: int) -> str:
    """Render an integer count of 10**-decimals units as a fixed point field.

    Values that do not fit the field lose fractional digits first.
    """
    sign = '-' if value < 0 else ''
    whole, frac = divmod(abs(value), 10 ** decimals)
    text = f"{sign}{whole}.{frac:0{decimals}d}"
    if len(text) > width:
        logger.warning("Value %s overflows a %d column field, dropping decimals", text, width)
    while len(text) > width and decimals > 0:
        decimals -= 1
        frac //= 10
        text = f"{sign}{whole}." + (f"{frac:0{decimals}d}" if decimals else '')
    return text.rjust(width)


class DataArc:
    """Difference accumulators of one (satellite, observable) arc.

    ``data[0]`` is the current value, ``data[k]`` its k-th order difference.
    An order below 1 means the arc carries absolute values.
    """

    __slots__ = ('order', 'data')

    def __init__(self, order: int, value: int):
        self.order = order
        self.data = [value]

    @property
    def value(self) -> int:
        return self.data[0]

    def update(self, diff: int) -> int:
        """Integrate an ``order``-th difference, return the new value"""
        data = self.data
        if self.order < 1:
            data[0] = diff
            return diff
        if len(data) < self.order:
            data.append(diff)
        else:
            data[-1] += diff
        for k in range(len(data) - 2, -1, -1):
            data[k] += data[k + 1]
        return data[0]

    def encode(self, value: int) -> int:
        """Difference to write for ``value``, updating the accumulators"""
        if self.order < 1:
            self.data = [value]
            return value
        new = [value]
        for k in range(1, min(len(self.data), self.order) + 1):
            new.append(new[k - 1] - self.data[k - 1])
        self.data = new[:self.order]
        return new[-1]


def _parse_arc_field(text: str, arc: Optional[DataArc]) -> Tuple[int, DataArc]:
    order, sep, value = text.partition('&')
    if sep:
        arc = DataArc(int(order), int(value))
        return arc.value, arc
    if arc is None:
        raise ValueError("difference without initialized arc")
    return arc.update(int(text)), arc


@dataclass
class CrinexEpoch:
    """One decompressed epoch, values as scaled integers.

    Attributes
    ----------
    epoch_line : str
        Reconstructed compact epoch line (satellites listed on it)
    satellites : list of str
        Satellite identifiers as written (``'G07'``, ``'G 7'``)
    clock : int or None
        Receiver clock offset, 1e-9 s (CRINEX 1) or 1e-12 s (CRINEX 3)
    values : list
        Per satellite, per observable values in 1e-3 units (None if missing)
    flags : list of str
        Per satellite LLI/SSI characters, two per observable
    events : list of str
        Special records of event epochs, verbatim
    """
    epoch_line: str
    satellites: List[str] = field(default_factory=list)
    clock: Optional[int] = None
    values: List[List[Optional[int]]] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)
    events: List[str] = field(default_factory=list)
    line_number: int = 0
    v3: bool = False

    @property
    def flag(self) -> int:
        return int(self.epoch_line[31 if self.v3 else 28])

    @property
    def count(self) -> int:
        cols = (32, 35) if self.v3 else (29, 32)
        return int(self.epoch_line[cols[0]:cols[1]])

    @property
    def time_text(self) -> str:
        return self.epoch_line[1:29] if self.v3 else self.epoch_line[0:26]


class CrinexDecompressor:
    """Streaming Compact RINEX decompressor.

    Feed text chunks of any size; each call returns what could be
    reconstructed so far. Differencing state belongs to the instance and
    lives for one stream.

    Example
    -------
    >>> dec = CrinexDecompressor()
    >>> lines = dec.feed(chunk)        # RINEX text lines
    >>> lines += dec.close()
    """

    def __init__(self):
        self._parser = HeaderParser()
        self._header: Optional[Header] = None
        self._pending = ''
        self._line_number = 0
        self._state = 'header'
        self._v3 = False
        self._marker = '&'
        self._sat_column = 32
        self._clock_decimals = 9
        self._ref: Optional[str] = None
        self._clock_arc: Optional[DataArc] = None
        self._arcs: Dict[str, Tuple[List[Optional[DataArc]], str]] = {}
        self._current: Optional[CrinexEpoch] = None
        self._next_arcs: Dict[str, Tuple[List[Optional[DataArc]], str]] = {}
        self._remaining = 0

    @property
    def header(self) -> Optional[Header]:
        """RINEX header, available once ``END OF HEADER`` was read"""
        return self._header

    def feed(self, chunk: str) -> List[str]:
        """Feed compact text, return reconstructed RINEX lines"""
        return self._text(self._push(chunk))

    def feed_epochs(self, chunk: str) -> List[CrinexEpoch]:
        """Feed compact text, return decoded epochs (header lines dropped)"""
        return [item for item in self._push(chunk) if isinstance(item, CrinexEpoch)]

    def close(self) -> List[str]:
        """Flush the last line and check the stream ended on a record boundary"""
        return self._text(self._finish())

    def close_epochs(self) -> List[CrinexEpoch]:
        return [item for item in self._finish() if isinstance(item, CrinexEpoch)]

    def _push(self, chunk: str) -> list:
        text = self._pending + chunk
        parts = text.split('\n')
        self._pending = parts.pop()
        items = []
        for line in parts:
            items.extend(self._consume(line.rstrip('\r')))
        return items

    def _finish(self) -> list:
        items = []
        if self._pending:
            line, self._pending = self._pending.rstrip('\r'), ''
            items.extend(self._consume(line))
        if self._state == 'header':
            raise MissingMandatoryField("Compact RINEX header is incomplete",
                                        line_number=self._line_number)
        if self._state != 'epoch':
            raise self._desync(f"Stream ended inside an epoch record (expecting {self._state} line)",
                               None)
        return items

    def _desync(self, message: str, line: Optional[str]) -> DesyncError:
        hdr = self._header
        return DesyncError(message, file_type='O',
                           version=hdr.version_text if hdr else None,
                           line_number=self._line_number, line=line,
                           dialect=f"CRINEX/{'3' if self._v3 else '1'}")

    def _consume(self, line: str) -> list:
        self._line_number += 1
        if self._state == 'header':
            return self._header_line(line)
        if self._state == 'epoch':
            self._epoch_line(line)
        elif self._state == 'event':
            self._current.events.append(line)
            self._remaining -= 1
        elif self._state == 'clock':
            self._clock_line(line)
        else:
            self._data_line(line)

        if self._current is not None and self._state in ('event', 'data') and self._remaining == 0:
            return [self._complete()]
        return []

    def _header_line(self, line: str) -> list:
        if self._line_number == 1:
            if line[60:].strip() != CRINEX_VERSION_LABEL:
                raise MissingMandatoryField(f"Compact RINEX must start with {CRINEX_VERSION_LABEL!r}",
                                            line_number=1, line=line)
            major = line[:20].strip()[:1]
            if major not in _LAYOUTS:
                raise UnsupportedDialect(f"Unknown Compact RINEX version {line[:20].strip()!r}",
                                         line_number=1, line=line)
            self._v3 = major == '3'
            self._marker, self._sat_column, self._clock_decimals = _LAYOUTS[major]
        done = self._parser.push(line)
        if done:
            header = self._parser.header
            if header.file_type is not FileType.OBSERVATION:
                raise UnsupportedDialect("Compact RINEX only carries observation data",
                                         file_type=header.file_type.value,
                                         version=header.version_text)
            if self._v3 != (header.version[0] >= 3):
                raise UnsupportedDialect(
                    f"Compact RINEX {header.crinex.version} cannot carry RINEX {header.version_text}",
                    file_type='O', version=header.version_text)
            self._header = header
            self._state = 'epoch'
            logger.debug("Compact RINEX %s header read (RINEX %s)",
                         header.crinex.version, header.version_text)
        if line[60:].strip() in (CRINEX_VERSION_LABEL, CRINEX_PROGRAM_LABEL):
            return []
        return [line]

    def _epoch_line(self, line: str) -> None:
        if not line.strip():
            return
        if line[0] == self._marker:
            ref = line if self._v3 else ' ' + line[1:]
            self._arcs = {}
            self._clock_arc = None
            logger.log(TRACE, "Reset marker at line %d", self._line_number)
        else:
            if self._ref is None:
                raise self._desync("Epoch line difference without initialized epoch line", line)
            ref = apply_text_diff(self._ref, line)
        self._ref = ref.rstrip()

        epoch = CrinexEpoch(self._ref, line_number=self._line_number, v3=self._v3)
        try:
            flag, count = epoch.flag, epoch.count
        except (ValueError, IndexError):
            raise self._desync("Cannot read epoch flag / satellite count", ref) from None
        if flag > 6:
            raise self._desync(f"Invalid epoch flag {flag}", ref)
        self._current = epoch
        self._remaining = count

        if 2 <= flag <= 5:
            self._state = 'event'
            # the epoch following special records is written in full
            self._ref = None
            if count == 0:
                self._state = 'data'
            return
        sats = self._ref[self._sat_column:]
        epoch.satellites = [sats[i:i + 3] for i in range(0, len(sats), 3)]
        if len(epoch.satellites) != count:
            raise self._desync(f"Epoch declares {count} satellites, {len(epoch.satellites)} listed", ref)
        self._next_arcs = {}
        self._state = 'clock'

    def _clock_line(self, line: str) -> None:
        text = line.strip()
        if not text:
            self._clock_arc = None
        else:
            try:
                self._current.clock, self._clock_arc = _parse_arc_field(text, self._clock_arc)
            except ValueError as err:
                raise self._desync(f"Clock offset: {err}", line) from None
        self._state = 'data'

    def _n_codes(self, sat: str) -> int:
        try:
            sv = SV.parse(sat)
        except ValueError:
            raise self._desync(f"Invalid satellite identifier {sat!r}", self._ref) from None
        n = len(self._header.codes(sv.system))
        if n == 0:
            raise self._desync(f"No observables declared for satellite {sat!r}", self._ref)
        return n

    def _data_line(self, line: str) -> None:
        epoch = self._current
        index = len(epoch.values)
        sat = epoch.satellites[index]
        nobs = self._n_codes(sat)
        arcs, flags = self._arcs.get(sat, (None, ''))
        if arcs is None:
            arcs = [None] * nobs

        fields = line.split(' ', nobs)
        values = []
        for k in range(nobs):
            text = fields[k] if k < len(fields) else ''
            if not text:
                arcs[k] = None
                values.append(None)
                continue
            try:
                value, arcs[k] = _parse_arc_field(text, arcs[k])
            except ValueError as err:
                raise self._desync(f"{sat} observable {k + 1}: {err}", line) from None
            values.append(value)
        flags = apply_text_diff(flags, fields[nobs] if len(fields) > nobs else '')

        epoch.values.append(values)
        epoch.flags.append(flags)
        self._next_arcs[sat] = (arcs, flags)
        self._remaining -= 1

    def _complete(self) -> CrinexEpoch:
        epoch = self._current
        if not 2 <= epoch.flag <= 5:
            # satellites absent from this epoch lose their state
            self._arcs = self._next_arcs
        self._current = None
        self._state = 'epoch'
        if logger.isEnabledFor(TRACE):
            logger.log(TRACE, "Epoch at line %d: %d satellites, %d live arcs", epoch.line_number,
                       len(epoch.satellites),
                       sum(1 for arcs, _ in self._arcs.values() for a in arcs if a is not None))
        return epoch

    def _text(self, items: list) -> List[str]:
        lines = []
        for item in items:
            if isinstance(item, str):
                lines.append(item)
            else:
                lines.extend(self.render_epoch(item))
        return lines

    def render_epoch(self, epoch: CrinexEpoch) -> List[str]:
        """RINEX text lines of a decompressed epoch"""
        major = self._header.version[0]
        if epoch.events or 2 <= epoch.flag <= 5:
            return [epoch.epoch_line.rstrip()] + list(epoch.events)
        lines = []
        if major == 2:
            first = epoch.epoch_line[:32] + ''.join(epoch.satellites[:12])
            if epoch.clock is not None:
                first = first.ljust(68) + format_scaled(epoch.clock, self._clock_decimals, 12)
            lines.append(first.rstrip())
            for i in range(12, len(epoch.satellites), 12):
                lines.append((' ' * 32 + ''.join(epoch.satellites[i:i + 12])).rstrip())
        else:
            first = epoch.epoch_line[:35]
            if epoch.clock is not None:
                first = first.ljust(41) + format_scaled(epoch.clock, self._clock_decimals, 15)
            lines.append(first.rstrip())

        for sat, values, flags in zip(epoch.satellites, epoch.values, epoch.flags):
            flags = flags.ljust(2 * len(values))
            fields = []
            for k, value in enumerate(values):
                text = ' ' * OBS_FIELD_WIDTH if value is None else \
                    format_scaled(value, OBS_DECIMALS, OBS_FIELD_WIDTH)
                fields.append(text + flags[2 * k:2 * k + 2])
            if major == 2:
                for i in range(0, max(len(fields), 1), 5):
                    lines.append(''.join(fields[i:i + 5]).rstrip())
            else:
                lines.append((sat + ''.join(fields)).rstrip())
        return lines


class CrinexCompressor:
    """Compact RINEX writer working on RINEX observation text.

    Parameters
    ----------
    order : int
        Difference order of the numeric arcs
    reset_every : int, optional
        Write a full (reset) epoch line every ``reset_every`` epochs
    program : str
        Program name written on the ``CRINEX PROG / DATE`` line
    date : str
        Date written on the ``CRINEX PROG / DATE`` line
    """

    def __init__(self, order: int = DEFAULT_ORDER, reset_every: Optional[int] = None,
                 program: str = 'pyrinex', date: str = ''):
        self.order = order
        self.reset_every = reset_every
        self.program = program
        self.date = date

    def compress_lines(self, lines: Iterable[str]) -> List[str]:
        """Compress RINEX observation lines (header included)"""
        lines = [line.rstrip('\r\n') for line in lines]
        parser = HeaderParser()
        n_header = 0
        for line in lines:
            n_header += 1
            if parser.push(line):
                break
        else:
            raise MissingMandatoryField("'END OF HEADER' not found", line_number=n_header)
        header = parser.header
        if header.file_type is not FileType.OBSERVATION:
            raise UnsupportedDialect("Only observation files can be compressed",
                                     file_type=header.file_type.value, version=header.version_text)

        v3 = header.version[0] >= 3
        info = CrinexInfo(version='3.0' if v3 else '1.0', program=self.program, date=self.date)
        out = [
            f"{info.version:<20}{'COMPACT RINEX FORMAT':<40}{CRINEX_VERSION_LABEL}",
            f"{info.program:<40}{info.date:<20}{CRINEX_PROGRAM_LABEL}",
        ]
        out.extend(line for line in lines[:n_header]
                   if line[60:].strip() not in (CRINEX_VERSION_LABEL, CRINEX_PROGRAM_LABEL))
        _BodyCompressor(header, self.order, self.reset_every, v3).run(
            LineStream(lines[n_header:], n_header + 1), out)
        return out


class _BodyCompressor:

    def __init__(self, header: Header, order: int, reset_every: Optional[int], v3: bool):
        self.header = header
        self.order = order
        self.reset_every = reset_every
        self.v3 = v3
        self.marker, self.sat_column, self.clock_decimals = _LAYOUTS['3' if v3 else '1']
        self.ref: Optional[str] = None
        self.clock_arc: Optional[DataArc] = None
        self.arcs: Dict[str, Tuple[List[Optional[DataArc]], str]] = {}
        self.epochs = 0

    def _error(self, message: str, stream: LineStream, line: Optional[str]) -> RecordDecodeError:
        return RecordDecodeError(message, file_type='O', version=self.header.version_text,
                                 line_number=stream.line_number, line=line,
                                 dialect=f"OBS/{self.header.version[0]}")

    def _next(self, stream: LineStream, what: str) -> str:
        line = stream.next()
        if line is None:
            raise self._error(f"Unexpected end of file, {what} expected", stream, None)
        return line

    def run(self, stream: LineStream, out: List[str]) -> None:
        while True:
            stream.skip_blank()
            line = stream.next()
            if line is None:
                return
            try:
                flag = int(line[31 if self.v3 else 28])
                count = int(line[32:35] if self.v3 else line[29:32])
            except (ValueError, IndexError):
                raise self._error("Cannot read epoch flag / satellite count", stream, line) from None

            if 2 <= flag <= 5:
                head = line if self.v3 else self.marker + line[1:]
                out.append(head.rstrip())
                for _ in range(count):
                    out.append(self._next(stream, "special record"))
                self.ref = None
                continue

            if self.v3:
                sat_lines = [self._next(stream, "satellite record") for _ in range(count)]
                sats = [sl[0:3] for sl in sat_lines]
                fields = [sl[3:] for sl in sat_lines]
                clock_text = line[41:56].strip()
                new = line[:35].ljust(self.sat_column) + ''.join(sats)
            else:
                sats = self._v2_satellites(line, count, stream)
                clock_text = line[68:80].strip()
                fields = []
                for sat in sats:
                    n_lines = max(1, -(-self._n_codes(sat, stream) // 5))
                    fields.append(''.join(self._next(stream, "observation line").ljust(80)
                                          for _ in range(n_lines)))
                new = line[:32] + ''.join(sats)
            new = new.rstrip()

            reset = self.ref is None or (self.reset_every and self.epochs % self.reset_every == 0)
            if reset:
                out.append(new if self.v3 else self.marker + new[1:])
                self.arcs = {}
                self.clock_arc = None
            else:
                out.append(text_diff(self.ref, new))
            self.ref = new
            self.epochs += 1

            out.append(self._clock(clock_text, stream, line))
            arcs = {}
            for sat, text in zip(sats, fields):
                out.append(self._satellite(sat, text, arcs, stream))
            self.arcs = arcs

    def _v2_satellites(self, line: str, count: int, stream: LineStream) -> List[str]:
        sats = []
        current = line
        while True:
            chunk = current[32:68]
            for i in range(0, min(len(chunk), 36), 3):
                if len(sats) < count:
                    sats.append(chunk[i:i + 3].ljust(3))
            if len(sats) >= count:
                return sats
            current = self._next(stream, "satellite list continuation")

    def _n_codes(self, sat: str, stream: LineStream) -> int:
        try:
            return len(self.header.codes(SV.parse(sat).system))
        except ValueError:
            raise self._error(f"Invalid satellite identifier {sat!r}", stream, None) from None

    def _clock(self, text: str, stream: LineStream, line: str) -> str:
        if not text:
            self.clock_arc = None
            return ''
        try:
            value = to_scaled(text, self.clock_decimals)
        except ValueError as err:
            raise self._error(f"Receiver clock offset: {err}", stream, line) from None
        if self.clock_arc is None:
            self.clock_arc = DataArc(self.order, value)
            return f"{self.order}&{value}"
        return str(self.clock_arc.encode(value))

    def _satellite(self, sat: str, text: str, arcs: dict, stream: LineStream) -> str:
        nobs = self._n_codes(sat, stream)
        old_arcs, old_flags = self.arcs.get(sat, (None, ''))
        sat_arcs = old_arcs if old_arcs is not None else [None] * nobs
        text = text.ljust(16 * nobs)
        out, flags = [], []
        for k in range(nobs):
            chunk = text[16 * k:16 * k + 16]
            flags.append(chunk[14:16])
            value_text = chunk[:14].strip()
            if not value_text:
                sat_arcs[k] = None
                out.append('')
                continue
            try:
                value = to_scaled(value_text, OBS_DECIMALS)
            except ValueError as err:
                raise self._error(f"{sat} observable {k + 1}: {err}", stream, text) from None
            if sat_arcs[k] is None:
                sat_arcs[k] = DataArc(self.order, value)
                out.append(f"{self.order}&{value}")
            else:
                out.append(str(sat_arcs[k].encode(value)))
        flags = ''.join(flags).rstrip()
        arcs[sat] = (sat_arcs, flags)
        diff = text_diff(old_flags, flags)
        line = ' '.join(out)
        return f"{line} {diff}" if diff else line.rstrip()


def decompress(text: str) -> str:
    """Decompress a whole Compact RINEX text"""
    dec = CrinexDecompressor()
    lines = dec.feed(text)
    lines.extend(dec.close())
    return '\n'.join(lines) + '\n'


def compress(text: str, order: int = DEFAULT_ORDER, reset_every: Optional[int] = None) -> str:
    """Compress a whole RINEX observation text"""
    lines = CrinexCompressor(order, reset_every).compress_lines(text.splitlines())
    return '\n'.join(lines) + '\n'
