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

"""RINEX header parsing and formatting.

Header lines carry their label from column 60; the parser dispatches on the
label. The version/type line comes first (after the two CRINEX lines for
compressed files) and selects the dialect immediately, so an unsupported
version or file type is reported before any body line is read. Labels with
no dedicated field are kept verbatim and written back unchanged.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..core.constants import (END_OF_HEADER, LABEL_COLUMN, SYS_ALL, SYS_GLO,
                              SYS_GPS, SYS_MIX, SYS_NONE, SYS_SBS, char2sys,
                              sys2char, sys2name, sys2timesys)
from ..core.data_structures import FileType
from ..core.errors import (MalformedHeaderLine, MissingMandatoryField,
                           UnsupportedDialect)
from ..core.time import GNSSTime
from . import grammar

logger = logging.getLogger(__name__)

VERSION_LABEL = 'RINEX VERSION / TYPE'
IONEX_VERSION_LABEL = 'IONEX VERSION / TYPE'
CRINEX_VERSION_LABEL = 'CRINEX VERS   / TYPE'
CRINEX_PROGRAM_LABEL = 'CRINEX PROG / DATE'

# Time system tags as written in files -> GNSSTime systems
_TIME_SYSTEM_TAGS = {'BDT': 'BDS'}
_TIME_SYSTEM_OUT = {'BDS': 'BDT'}

_NAV2_LETTERS = {SYS_GPS: 'N', SYS_GLO: 'G', SYS_SBS: 'H'}
_NAV2_TEXT = {'N': 'N: GPS NAV DATA', 'G': 'G: GLONASS NAV DATA', 'H': 'H: GEO NAV MSG DATA'}

# Standard records without a dedicated Header field, kept as written
VERBATIM_LABELS = frozenset([
    '# OF SATELLITES', 'PRN / # OF OBS', 'SYS / PHASE SHIFT', 'SYS / PHASE SHIFTS',
    'GLONASS SLOT / FRQ #', 'GLONASS COD/PHS/BIS', 'SIGNAL STRENGTH UNIT',
    'RCV CLOCK OFFS APPL', 'SYS / DCBS APPLIED', 'SYS / PCVS APPLIED', 'SYS / SCALE FACTOR',
    'ANTENNA: DELTA X/Y/Z', 'ANTENNA: PHASECENTER', 'ANTENNA: B.SIGHT XYZ',
    'ANTENNA: ZERODIR AZI', 'ANTENNA: ZERODIR XYZ', 'CENTER OF MASS: XYZ', 'DOI', 'LICENSE OF USE',
    'STATION INFORMATION', 'MERGED FILE', 'DESCRIPTION', 'OBSERVABLES USED', '# OF STATIONS',
    'START OF AUX DATA', 'END OF AUX DATA', 'PRN / BIAS / RMS', 'STATION / BIAS / RMS',
    'STATION NAME / NUM', 'STATION CLK REF', '# OF SOLN STA / TRF', 'SOLN STA NAME / NUM',
    '# OF SOLN SATS', 'PRN LIST', 'ANALYSIS CLK REF', '# OF CLK REF',
])


@dataclass
class CrinexInfo:
    """Compact RINEX preamble"""
    version: str = '3.0'
    program: str = 'pyrinex'
    date: str = ''


@dataclass
class MeteoSensor:
    """Meteorological sensor description and position"""
    model: str = ''
    sensor_type: str = ''
    accuracy: Optional[float] = None
    position: Optional[Tuple[float, float, float, float]] = None  # X, Y, Z, H


@dataclass
class IonexGrid:
    """IONEX map definition.

    Attributes
    ----------
    heights, latitudes, longitudes : tuple
        (first, last, increment) of the grid axes
    exponent : int
        Power of ten applied to the integer map values
    """
    system: str = 'GPS'
    heights: Tuple[float, float, float] = (450.0, 450.0, 0.0)
    latitudes: Tuple[float, float, float] = (87.5, -87.5, -2.5)
    longitudes: Tuple[float, float, float] = (-180.0, 180.0, 5.0)
    exponent: int = -1
    map_dimension: int = 2
    base_radius: Optional[float] = None
    mapping_function: Optional[str] = None
    elevation_cutoff: Optional[float] = None
    epoch_of_first_map: Optional[GNSSTime] = None
    epoch_of_last_map: Optional[GNSSTime] = None
    number_of_maps: Optional[int] = None

    @staticmethod
    def _axis(bounds) -> np.ndarray:
        start, stop, step = bounds
        if step == 0:
            return np.array([start])
        count = int(round((stop - start) / step)) + 1
        return np.round(start + step * np.arange(count), 6)

    @property
    def latitude_values(self) -> np.ndarray:
        return self._axis(self.latitudes)

    @property
    def longitude_values(self) -> np.ndarray:
        return self._axis(self.longitudes)

    @property
    def height_values(self) -> np.ndarray:
        return self._axis(self.heights)

    @property
    def shape(self) -> Tuple[int, int, int]:
        return len(self.height_values), len(self.latitude_values), len(self.longitude_values)


@dataclass
class Header:
    """Structured RINEX / IONEX header.

    ``observables`` maps a constellation to its ordered observable codes;
    RINEX 2 observation and meteo files declare one shared list stored
    under ``SYS_ALL``.
    """
    version: Tuple[int, int] = (3, 4)
    file_type: FileType = FileType.OBSERVATION
    constellation: int = SYS_MIX
    program: str = ''
    run_by: str = ''
    date: str = ''
    comments: List[str] = field(default_factory=list)
    marker_name: Optional[str] = None
    marker_number: Optional[str] = None
    marker_type: Optional[str] = None
    observer: Optional[str] = None
    agency: Optional[str] = None
    receiver: Optional[Tuple[str, str, str]] = None        # number, type, version
    antenna: Optional[Tuple[str, str]] = None              # number, type
    approx_position: Optional[Tuple[float, float, float]] = None
    antenna_delta: Optional[Tuple[float, float, float]] = None   # H, E, N
    wavelength_factors: List[str] = field(default_factory=list)
    observables: Dict[int, List[str]] = field(default_factory=dict)
    interval: Optional[float] = None
    time_of_first_obs: Optional[GNSSTime] = None
    time_of_last_obs: Optional[GNSSTime] = None
    time_system: Optional[str] = None
    leap_seconds: Optional[int] = None
    leap_seconds_extra: str = ''
    ionospheric_corrections: Dict[str, Tuple[Optional[float], ...]] = field(default_factory=dict)
    time_corrections: List[Tuple[str, str]] = field(default_factory=list)
    meteo_sensors: Dict[str, MeteoSensor] = field(default_factory=dict)
    ionex: Optional[IonexGrid] = None
    clock_data_types: List[str] = field(default_factory=list)
    analysis_center: Optional[str] = None
    unknown: List[Tuple[str, str]] = field(default_factory=list)
    crinex: Optional[CrinexInfo] = field(default=None, compare=False)

    @property
    def version_text(self) -> str:
        major, minor = self.version
        if self.file_type is FileType.IONEX:
            return f"{major}.{minor}"
        return f"{major}.{minor:02d}"

    @property
    def dialect(self):
        """Body layout resolved from version, file type and constellation"""
        return grammar.resolve(self.version, self.file_type, self.constellation)

    def codes(self, system: int) -> List[str]:
        """Observable codes declared for a constellation"""
        if system in self.observables:
            return self.observables[system]
        return self.observables.get(SYS_ALL, [])

    def epoch_time_system(self) -> str:
        """Time system in which body epochs are expressed"""
        if self.file_type is FileType.IONEX:
            return 'UTC'
        if self.time_system:
            return self.time_system
        if self.constellation in (SYS_MIX, SYS_NONE, SYS_ALL):
            return 'GPS'
        return sys2timesys(self.constellation)


def _split_label(line: str) -> Tuple[str, str]:
    return line[:LABEL_COLUMN].rstrip(), line[LABEL_COLUMN:].strip()


def _parse_version(text: str, ionex: bool = False) -> Tuple[int, int]:
    text = text.strip()
    whole, _, frac = text.partition('.')
    major = int(whole)
    if ionex:
        return major, int(frac[:1] or 0)
    return major, int(frac[:2].ljust(2, '0') or 0)


def _floats(content: str, start: int, width: int, count: int) -> Tuple[Optional[float], ...]:
    return tuple(grammar.parse_float(content[start + i * width:start + (i + 1) * width])
                 for i in range(count))


def _time_tag(text: str) -> Optional[str]:
    text = text.strip().upper()
    if not text:
        return None
    return _TIME_SYSTEM_TAGS.get(text, text)


class HeaderParser:
    """Incremental header parser.

    Lines are pushed one at a time; :meth:`push` returns True once the
    ``END OF HEADER`` line has been consumed.

    Parameters
    ----------
    first_line_number : int
        Line number of the first pushed line, used in error context
    """

    def __init__(self, first_line_number: int = 1):
        self.header = Header()
        self.line_count = 0
        self.done = False
        self._first_line_number = first_line_number
        self._have_version = False
        self._expected_codes: Dict[int, int] = {}
        self._last_system: Optional[int] = None

    @property
    def line_number(self) -> int:
        return self._first_line_number + self.line_count - 1

    def _context(self, line: str) -> dict:
        hdr = self.header
        return dict(file_type=hdr.file_type.value if self._have_version else None,
                    version=hdr.version_text if self._have_version else None,
                    line_number=self.line_number, line=line)

    def push(self, line: str) -> bool:
        """Consume one header line"""
        line = line.rstrip('\r\n')
        self.line_count += 1
        content, label = _split_label(line)

        if not self._have_version:
            if label == CRINEX_VERSION_LABEL and self.line_count == 1:
                self.header.crinex = CrinexInfo(version=line[:20].strip())
                return False
            if label == CRINEX_PROGRAM_LABEL and self.header.crinex is not None:
                self.header.crinex.program = line[:40].strip()
                self.header.crinex.date = line[40:60].strip()
                return False
            if label not in (VERSION_LABEL, IONEX_VERSION_LABEL):
                raise MissingMandatoryField(
                    f"Header must start with {VERSION_LABEL!r}", **self._context(line))
            self._parse_version_line(line, label)
            self._have_version = True
            return False

        if label == END_OF_HEADER:
            self._finish(line)
            self.done = True
            return True

        try:
            self._dispatch(label, content, line)
        except (MalformedHeaderLine, UnsupportedDialect):
            raise
        except (ValueError, IndexError) as err:
            raise MalformedHeaderLine(f"Cannot parse {label!r} record: {err}",
                                      **self._context(line)) from err
        return False

    def _parse_version_line(self, line: str, label: str) -> None:
        hdr = self.header
        ionex = label == IONEX_VERSION_LABEL
        try:
            hdr.version = _parse_version(line[:20], ionex=ionex)
        except ValueError as err:
            raise MalformedHeaderLine(f"Cannot parse format version: {err}",
                                      line_number=self.line_number, line=line) from err
        letter = line[20:21].upper()
        tag = hdr.version_text

        if ionex:
            if letter != 'I':
                raise UnsupportedDialect(f"Unknown IONEX file type {letter!r}",
                                         version=tag, line_number=self.line_number, line=line)
            hdr.file_type = FileType.IONEX
            hdr.constellation = SYS_NONE
            hdr.ionex = IonexGrid(system=line[40:43].strip() or 'GPS')
        else:
            system_letter = line[40:41]
            if letter in grammar.NAV2_CONSTELLATIONS and hdr.version[0] == 2:
                hdr.file_type = FileType.NAVIGATION
                hdr.constellation = grammar.NAV2_CONSTELLATIONS[letter]
            else:
                try:
                    hdr.file_type = FileType(letter)
                except ValueError:
                    raise UnsupportedDialect(f"Unknown RINEX file type {letter!r}", version=tag,
                                             line_number=self.line_number, line=line) from None
                if hdr.file_type is FileType.IONEX:
                    raise UnsupportedDialect("IONEX files use the IONEX VERSION / TYPE record",
                                             version=tag, line_number=self.line_number, line=line)
                if hdr.file_type in (FileType.OBSERVATION, FileType.NAVIGATION):
                    try:
                        hdr.constellation = grammar.constellation_of(system_letter)
                    except ValueError as err:
                        raise UnsupportedDialect(str(err), file_type=letter, version=tag,
                                                 line_number=self.line_number, line=line) from None
                else:
                    hdr.constellation = char2sys(system_letter) if system_letter.strip() else SYS_NONE

        try:
            layout = grammar.resolve(hdr.version, hdr.file_type, hdr.constellation)
        except UnsupportedDialect as err:
            raise err.with_context(line_number=self.line_number, line=line)
        logger.debug("Resolved dialect %s (version %s)", layout.dialect, tag)

    def _dispatch(self, label: str, content: str, line: str) -> None:
        hdr = self.header
        ftype = hdr.file_type

        if label == 'COMMENT':
            hdr.comments.append(content)
        elif label == 'PGM / RUN BY / DATE':
            hdr.program = content[0:20].strip()
            hdr.run_by = content[20:40].strip()
            hdr.date = content[40:60].strip()
        elif label == 'MARKER NAME':
            hdr.marker_name = content.strip()
        elif label == 'MARKER NUMBER':
            hdr.marker_number = content[:20].strip()
        elif label == 'MARKER TYPE':
            hdr.marker_type = content[:20].strip()
        elif label == 'OBSERVER / AGENCY':
            hdr.observer = content[0:20].strip()
            hdr.agency = content[20:60].strip()
        elif label == 'REC # / TYPE / VERS':
            hdr.receiver = (content[0:20].strip(), content[20:40].strip(), content[40:60].strip())
        elif label == 'ANT # / TYPE':
            hdr.antenna = (content[0:20].strip(), content[20:40].strip())
        elif label == 'APPROX POSITION XYZ':
            hdr.approx_position = self._triplet(content, 14)
        elif label == 'ANTENNA: DELTA H/E/N':
            hdr.antenna_delta = self._triplet(content, 14)
        elif label == 'WAVELENGTH FACT L1/2':
            hdr.wavelength_factors.append(content)
        elif label == '# / TYPES OF OBSERV':
            self._catalog(SYS_ALL, content[:6], content[6:].split())
        elif label == 'SYS / # / OBS TYPES':
            letter = content[0:1]
            if letter.strip():
                system = char2sys(letter)
                if system == SYS_NONE:
                    raise MalformedHeaderLine(f"Unknown satellite system {letter!r}",
                                              **self._context(line))
                self._catalog(system, content[3:6], content[7:].split())
            elif self._last_system is not None:
                self._catalog(self._last_system, '', content[7:].split())
            else:
                raise MalformedHeaderLine("Observable continuation without system",
                                          **self._context(line))
        elif label == 'INTERVAL':
            if ftype is FileType.IONEX:
                hdr.interval = float(int(content[:6]))
            else:
                hdr.interval = float(content[:10])
        elif label == 'TIME OF FIRST OBS':
            hdr.time_of_first_obs = self._obs_time(content)
            hdr.time_system = hdr.time_of_first_obs.time_sys
        elif label == 'TIME OF LAST OBS':
            hdr.time_of_last_obs = self._obs_time(content)
        elif label == 'LEAP SECONDS':
            hdr.leap_seconds = int(content[:6])
            hdr.leap_seconds_extra = content[6:].rstrip()
        elif label in ('ION ALPHA', 'ION BETA'):
            key = 'GPSA' if label == 'ION ALPHA' else 'GPSB'
            hdr.ionospheric_corrections[key] = _floats(content, 2, 12, 4)
        elif label == 'IONOSPHERIC CORR':
            hdr.ionospheric_corrections[content[:4].strip()] = _floats(content, 5, 12, 4)
        elif label in ('DELTA-UTC: A0,A1,T,W', 'TIME SYSTEM CORR', 'CORR TO SYSTEM TIME',
                       'D-UTC A0,A1,T,W,S,U'):
            hdr.time_corrections.append((label, content))
        elif label == 'SENSOR MOD/TYPE/ACC':
            sensor = hdr.meteo_sensors.setdefault(content[57:59].strip(), MeteoSensor())
            sensor.model = content[0:20].strip()
            sensor.sensor_type = content[20:40].strip()
            sensor.accuracy = grammar.parse_float(content[46:53])
        elif label == 'SENSOR POS XYZ/H':
            sensor = hdr.meteo_sensors.setdefault(content[57:59].strip(), MeteoSensor())
            sensor.position = tuple(float(content[i * 14:(i + 1) * 14]) for i in range(4))
        elif ftype is FileType.IONEX and self._ionex(label, content):
            pass
        elif label == '# / TYPES OF DATA':
            hdr.clock_data_types.extend(content[6:].split())
        elif label == 'TIME SYSTEM ID':
            hdr.time_system = _time_tag(content[3:6])
        elif label == 'ANALYSIS CENTER':
            hdr.analysis_center = content
        else:
            if label in VERBATIM_LABELS:
                logger.debug("Keeping header record %r verbatim", label)
            else:
                logger.warning("Unknown header label %r kept verbatim (line %d)", label,
                               self.line_number)
            hdr.unknown.append((label, content))

    def _ionex(self, label: str, content: str) -> bool:
        grid = self.header.ionex
        if label == 'EPOCH OF FIRST MAP':
            grid.epoch_of_first_map = grammar.parse_epoch(content[:36], 'UTC')
        elif label == 'EPOCH OF LAST MAP':
            grid.epoch_of_last_map = grammar.parse_epoch(content[:36], 'UTC')
        elif label == '# OF MAPS IN FILE':
            grid.number_of_maps = int(content[:6])
        elif label == 'MAPPING FUNCTION':
            grid.mapping_function = content[2:6].strip()
        elif label == 'ELEVATION CUTOFF':
            grid.elevation_cutoff = float(content[:8])
        elif label == 'BASE RADIUS':
            grid.base_radius = float(content[:8])
        elif label == 'MAP DIMENSION':
            grid.map_dimension = int(content[:6])
        elif label == 'HGT1 / HGT2 / DHGT':
            grid.heights = self._triplet(content[2:], 6)
        elif label == 'LAT1 / LAT2 / DLAT':
            grid.latitudes = self._triplet(content[2:], 6)
        elif label == 'LON1 / LON2 / DLON':
            grid.longitudes = self._triplet(content[2:], 6)
        elif label == 'EXPONENT':
            grid.exponent = int(content[:6])
        else:
            return False
        return True

    @staticmethod
    def _triplet(content: str, width: int) -> Tuple[float, float, float]:
        return tuple(float(content[i * width:(i + 1) * width]) for i in range(3))

    def _catalog(self, system: int, count: str, codes: List[str]) -> None:
        catalog = self.header.observables.setdefault(system, [])
        if count.strip():
            self._expected_codes[system] = int(count)
        catalog.extend(codes)
        self._last_system = system

    def _obs_time(self, content: str) -> GNSSTime:
        tag = _time_tag(content[48:51]) or self.header.epoch_time_system()
        return grammar.parse_epoch(content[:43], tag)

    def _finish(self, line: str) -> None:
        for system, expected in self._expected_codes.items():
            found = len(self.header.observables.get(system, []))
            if found != expected:
                raise MalformedHeaderLine(
                    f"{expected} observables declared for {sys2char(system)!r}, {found} listed",
                    **self._context(line))


def parse_header(lines: Iterable[str], first_line_number: int = 1) -> Tuple[Header, int]:
    """Parse header lines up to and including ``END OF HEADER``.

    Parameters
    ----------
    lines : iterable of str
        Text lines; only the header part is consumed from an iterator
    first_line_number : int
        Line number of the first line, for error context

    Returns
    -------
    tuple
        (Header, number of lines consumed), the latter being the offset of
        the first body line

    Raises
    ------
    MissingMandatoryField
        Version/type record or END OF HEADER absent
    MalformedHeaderLine
        Numeric or date field that cannot be parsed
    UnsupportedDialect
        Unknown version / file type / constellation
    """
    parser = HeaderParser(first_line_number)
    for line in lines:
        if parser.push(line):
            return parser.header, parser.line_count
    if parser.line_count == 0:
        raise MissingMandatoryField(f"Empty input, {VERSION_LABEL!r} missing")
    hdr = parser.header
    raise MissingMandatoryField(f"{END_OF_HEADER!r} not found",
                                file_type=hdr.file_type.value, version=hdr.version_text,
                                line_number=parser.line_number)


def label_line(content: str, label: str) -> str:
    return f"{content:<60}{label}"


def _fmt(value: Optional[float], width: int, decimals: int) -> str:
    if value is None:
        return ' ' * width
    return f"{value:{width}.{decimals}f}"


def _d12(value: Optional[float]) -> str:
    if value is None:
        return ' ' * 12
    return f"{value:12.4E}"


def _version_line(hdr: Header) -> str:
    if hdr.file_type is FileType.IONEX:
        content = f"{hdr.version_text:>8}{'':12}{'IONOSPHERE MAPS':<20}{hdr.ionex.system:<20}"
        return label_line(content, IONEX_VERSION_LABEL)
    if hdr.file_type is FileType.OBSERVATION:
        kind = 'OBSERVATION DATA'
    elif hdr.file_type is FileType.NAVIGATION:
        if hdr.version[0] == 2:
            kind = _NAV2_TEXT[_NAV2_LETTERS[hdr.constellation]]
        else:
            kind = 'N: GNSS NAV DATA'
    elif hdr.file_type is FileType.METEO:
        kind = 'METEOROLOGICAL DATA'
    else:
        kind = 'CLOCK DATA'
    system = ''
    if hdr.constellation != SYS_NONE and not (hdr.file_type is FileType.NAVIGATION
                                              and hdr.version[0] == 2):
        system = f"{sys2char(hdr.constellation)}: {sys2name(hdr.constellation).upper()}"
    return label_line(f"{hdr.version_text:>9}{'':11}{kind:<20}{system:<20}", VERSION_LABEL)


def _obs_time_line(time: GNSSTime, label: str) -> str:
    y, m, d, hh, mi, ss, ns = time.to_calendar()
    tag = _TIME_SYSTEM_OUT.get(time.time_sys, time.time_sys)
    return label_line(f"{y:6d}{m:6d}{d:6d}{hh:6d}{mi:6d}{ss:5d}.{ns // 100:07d}     {tag:3s}", label)


def _catalog_lines(hdr: Header) -> List[str]:
    lines = []
    if hdr.version[0] == 2 or hdr.file_type is FileType.METEO:
        codes = hdr.observables.get(SYS_ALL, [])
        for i in range(0, max(len(codes), 1), 9):
            head = f"{len(codes):6d}" if i == 0 else ' ' * 6
            lines.append(label_line(head + ''.join(f"{c:>6}" for c in codes[i:i + 9]),
                               '# / TYPES OF OBSERV'))
        return lines
    for system, codes in hdr.observables.items():
        for i in range(0, max(len(codes), 1), 13):
            head = f"{sys2char(system)}  {len(codes):3d}" if i == 0 else ' ' * 6
            lines.append(label_line(head + ''.join(f" {c:3s}" for c in codes[i:i + 13]),
                               'SYS / # / OBS TYPES'))
    return lines


def _ionex_lines(grid: IonexGrid) -> List[str]:
    lines = []
    if grid.epoch_of_first_map is not None:
        lines.append(label_line(grammar.IonexLayout.format_epoch(grid.epoch_of_first_map),
                           'EPOCH OF FIRST MAP'))
    if grid.epoch_of_last_map is not None:
        lines.append(label_line(grammar.IonexLayout.format_epoch(grid.epoch_of_last_map),
                           'EPOCH OF LAST MAP'))
    if grid.number_of_maps is not None:
        lines.append(label_line(f"{grid.number_of_maps:6d}", '# OF MAPS IN FILE'))
    if grid.mapping_function is not None:
        lines.append(label_line(f"  {grid.mapping_function:4s}", 'MAPPING FUNCTION'))
    if grid.elevation_cutoff is not None:
        lines.append(label_line(_fmt(grid.elevation_cutoff, 8, 1), 'ELEVATION CUTOFF'))
    if grid.base_radius is not None:
        lines.append(label_line(_fmt(grid.base_radius, 8, 1), 'BASE RADIUS'))
    lines.append(label_line(f"{grid.map_dimension:6d}", 'MAP DIMENSION'))
    for bounds, label in ((grid.heights, 'HGT1 / HGT2 / DHGT'),
                          (grid.latitudes, 'LAT1 / LAT2 / DLAT'),
                          (grid.longitudes, 'LON1 / LON2 / DLON')):
        lines.append(label_line('  ' + ''.join(_fmt(v, 6, 1) for v in bounds), label))
    lines.append(label_line(f"{grid.exponent:6d}", 'EXPONENT'))
    return lines


def format_header(hdr: Header, crinex: Optional[CrinexInfo] = None) -> List[str]:
    """Render a header as text lines (without line terminators).

    Records are written in a canonical order; unknown records follow the
    known ones, in their original order.
    """
    lines = []
    if crinex is not None:
        lines.append(label_line(f"{crinex.version:<20}{'COMPACT RINEX FORMAT':<40}", CRINEX_VERSION_LABEL))
        lines.append(label_line(f"{crinex.program:<40}{crinex.date:<20}", CRINEX_PROGRAM_LABEL))
    lines.append(_version_line(hdr))
    lines.append(label_line(f"{hdr.program:<20}{hdr.run_by:<20}{hdr.date:<20}", 'PGM / RUN BY / DATE'))
    lines.extend(label_line(c, 'COMMENT') for c in hdr.comments)
    if hdr.marker_name is not None:
        lines.append(label_line(hdr.marker_name, 'MARKER NAME'))
    if hdr.marker_number is not None:
        lines.append(label_line(hdr.marker_number, 'MARKER NUMBER'))
    if hdr.marker_type is not None:
        lines.append(label_line(hdr.marker_type, 'MARKER TYPE'))
    if hdr.observer is not None or hdr.agency is not None:
        lines.append(label_line(f"{hdr.observer or '':<20}{hdr.agency or ''}", 'OBSERVER / AGENCY'))
    if hdr.receiver is not None:
        lines.append(label_line(''.join(f"{v:<20}" for v in hdr.receiver), 'REC # / TYPE / VERS'))
    if hdr.antenna is not None:
        lines.append(label_line(''.join(f"{v:<20}" for v in hdr.antenna), 'ANT # / TYPE'))
    if hdr.approx_position is not None:
        lines.append(label_line(''.join(_fmt(v, 14, 4) for v in hdr.approx_position),
                           'APPROX POSITION XYZ'))
    if hdr.antenna_delta is not None:
        lines.append(label_line(''.join(_fmt(v, 14, 4) for v in hdr.antenna_delta),
                           'ANTENNA: DELTA H/E/N'))
    lines.extend(label_line(c, 'WAVELENGTH FACT L1/2') for c in hdr.wavelength_factors)
    if hdr.file_type in (FileType.OBSERVATION, FileType.METEO):
        lines.extend(_catalog_lines(hdr))
    for code, sensor in hdr.meteo_sensors.items():
        lines.append(label_line(f"{sensor.model:<20}{sensor.sensor_type:<20}{'':6}"
                           f"{_fmt(sensor.accuracy, 7, 1)}{'':4}{code:2s}", 'SENSOR MOD/TYPE/ACC'))
        if sensor.position is not None:
            lines.append(label_line(''.join(_fmt(v, 14, 4) for v in sensor.position) + f" {code:2s}",
                               'SENSOR POS XYZ/H'))
    for key, values in hdr.ionospheric_corrections.items():
        if hdr.version[0] == 2:
            label = 'ION ALPHA' if key == 'GPSA' else 'ION BETA'
            lines.append(label_line('  ' + ''.join(_d12(v) for v in values), label))
        else:
            lines.append(label_line(f"{key:<4} " + ''.join(_d12(v) for v in values), 'IONOSPHERIC CORR'))
    lines.extend(label_line(content, label) for label, content in hdr.time_corrections)
    if hdr.ionex is not None:
        lines.extend(_ionex_lines(hdr.ionex))
    if hdr.clock_data_types:
        lines.append(label_line(f"{len(hdr.clock_data_types):6d}"
                           + ''.join(f"{t:>6}" for t in hdr.clock_data_types), '# / TYPES OF DATA'))
    if hdr.file_type is FileType.CLOCK and hdr.time_system is not None:
        lines.append(label_line(f"   {_TIME_SYSTEM_OUT.get(hdr.time_system, hdr.time_system):3s}",
                           'TIME SYSTEM ID'))
    if hdr.analysis_center is not None:
        lines.append(label_line(hdr.analysis_center, 'ANALYSIS CENTER'))
    if hdr.interval is not None:
        if hdr.file_type is FileType.IONEX:
            lines.append(label_line(f"{int(hdr.interval):6d}", 'INTERVAL'))
        else:
            lines.append(label_line(_fmt(hdr.interval, 10, 3), 'INTERVAL'))
    if hdr.time_of_first_obs is not None:
        lines.append(_obs_time_line(hdr.time_of_first_obs, 'TIME OF FIRST OBS'))
    if hdr.time_of_last_obs is not None:
        lines.append(_obs_time_line(hdr.time_of_last_obs, 'TIME OF LAST OBS'))
    if hdr.leap_seconds is not None:
        lines.append(label_line(f"{hdr.leap_seconds:6d}{hdr.leap_seconds_extra}", 'LEAP SECONDS'))
    lines.extend(label_line(content, label) for label, content in hdr.unknown)
    lines.append(label_line('', END_OF_HEADER))
    return lines
