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

"""RINEX file reading and writing.

Entry points used by collaborators:

- :func:`parse` turns a byte source into ``(Header, TimeSeries)``
- :func:`iterate` walks a container chronologically
- :func:`merge` combines containers of the same file type
- :func:`serialize` / :func:`write` render a container back to RINEX text
"""

import gzip
import logging
import os
from typing import List, Optional, Tuple, Union

from ..config import ParseOptions
from ..core.data_structures import FileType, MergePolicy
from ..core.errors import NonMonotonicEpoch, UnsupportedDialect
from ..core.time import GNSSTime
from ..core.timeseries import EpochRange, TimeSeries
from ..logger import setup_logger, setup_logger_from_config
from . import clock, crinex, ionex, meteo, navigation, observation
from .header import CRINEX_VERSION_LABEL, Header, format_header, parse_header
from .lines import LineStream

logger = logging.getLogger(__name__)

GZIP_MAGIC = b'\x1f\x8b'

Source = Union[str, bytes, os.PathLike]


def read_bytes(source, gzip_auto: bool = True) -> bytes:
    """Read a byte source: path, raw bytes or binary file object.

    Gzip content is inflated when ``gzip_auto`` is set.
    """
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    elif hasattr(source, 'read'):
        data = source.read()
        if isinstance(data, str):
            data = data.encode('latin-1')
    else:
        with open(source, 'rb') as f:
            data = f.read()
    if gzip_auto and data[:2] == GZIP_MAGIC:
        data = gzip.decompress(data)
    return data


def is_crinex(lines: List[str]) -> bool:
    return bool(lines) and lines[0][60:].strip() == CRINEX_VERSION_LABEL


def parse(source: Source, options: Optional[ParseOptions] = None) -> Tuple[Header, TimeSeries]:
    """Parse a RINEX, Compact RINEX or IONEX byte source.

    Parameters
    ----------
    source : str, os.PathLike, bytes or binary file object
        File path, file content, or an open file
    options : ParseOptions, optional
        Reading options

    Returns
    -------
    tuple
        (Header, TimeSeries)

    Raises
    ------
    RinexError
        Any error of the pyrinex taxonomy; no partial container is returned
    OSError
        Failures of the byte source, unchanged
    """
    options = options or ParseOptions()
    if options.log_level:
        setup_logger(level=options.log_level)
    if options.log_config:
        setup_logger_from_config(options.log_config)
    data = read_bytes(source, options.gzip_auto)
    return parse_text(data.decode('latin-1'), options)


def parse_text(text: str, options: Optional[ParseOptions] = None) -> Tuple[Header, TimeSeries]:
    """Parse decoded RINEX text, see :func:`parse`"""
    options = options or ParseOptions()
    lines = text.splitlines()

    if options.crinex_auto and is_crinex(lines):
        header, items = _decode_crinex(lines)
    else:
        header, n_header = parse_header(lines)
        logger.debug("Resolved dialect %s for %s version %s", header.dialect.dialect,
                     header.file_type.name, header.version_text)
        items = _decode_body(header, LineStream(lines[n_header:], n_header + 1))

    series = TimeSeries(header.file_type, append_only=True)
    try:
        for key, payload in items:
            series.insert(key, payload)
    except NonMonotonicEpoch as err:
        raise err.with_context(version=header.version_text, dialect=header.dialect.dialect)
    logger.info("Parsed %s RINEX %s: %d epochs", header.file_type.name, header.version_text,
                len(series))
    return header, series


def _decode_crinex(lines: List[str]):
    dec = crinex.CrinexDecompressor()
    epochs = dec.feed_epochs('\n'.join(lines) + '\n')
    epochs.extend(dec.close_epochs())
    header = dec.header
    logger.debug("Resolved dialect %s from Compact RINEX %s", header.dialect.dialect,
                 header.crinex.version)
    decoder = observation.ObservationDecoder(header)
    return header, decoder.decode_crinex(epochs)


def _sorted_by_time(items):
    return sorted(items, key=lambda item: item[0])


def _decode_body(header: Header, stream: LineStream):
    ftype = header.file_type
    if ftype is FileType.OBSERVATION:
        return observation.ObservationDecoder(header).decode(stream)
    if ftype is FileType.METEO:
        return meteo.MeteoDecoder(header).decode(stream)
    if ftype is FileType.NAVIGATION:
        messages = list(navigation.NavigationDecoder(header).decode(stream))
        return navigation.build_payloads(messages)
    if ftype is FileType.IONEX:
        return ionex.IonexDecoder(header).decode(stream)
    if ftype is FileType.CLOCK:
        return _sorted_by_time(clock.ClockDecoder(header).decode(stream))
    raise UnsupportedDialect(f"No body decoder for {ftype.name}", file_type=ftype.value,
                             version=header.version_text)


def iterate(container: TimeSeries, start: Optional[GNSSTime] = None,
            end: Optional[GNSSTime] = None) -> EpochRange:
    """Chronological (EpochKey, payload) pairs, optionally within [start, end]"""
    return container.range(start, end)


def merge(a: TimeSeries, b: TimeSeries,
          policy: Union[MergePolicy, str, None] = None) -> TimeSeries:
    """Merge two containers of the same file type.

    ``policy`` defaults to :attr:`ParseOptions.merge_policy`.
    """
    if policy is None:
        policy = ParseOptions().merge_policy
    return a.merge(b, MergePolicy.parse(policy))


def format_body(header: Header, container: TimeSeries) -> List[str]:
    """RINEX body lines of a container"""
    ftype = header.file_type
    if ftype is not container.file_type:
        raise ValueError(f"{container.file_type.name} data cannot follow a {ftype.name} header")
    if ftype is FileType.IONEX:
        return ionex.format_body(header, list(container))
    lines = []
    for key, payload in container:
        if ftype is FileType.OBSERVATION:
            lines.extend(observation.format_epoch(header, key, payload))
        elif ftype is FileType.METEO:
            lines.extend(meteo.format_epoch(header, key, payload))
        elif ftype is FileType.CLOCK:
            lines.extend(clock.format_epoch(header, key, payload))
        else:
            for messages in payload.messages.values():
                for msg in messages:
                    lines.extend(navigation.format_message(header, msg))
    return lines


def serialize(header: Header, container: TimeSeries, compress: bool = False,
              options: Optional[ParseOptions] = None) -> str:
    """Render a header and container as RINEX text.

    With ``compress`` set, observation data is written as Compact RINEX.
    """
    options = options or ParseOptions()
    lines = format_header(header) + format_body(header, container)
    if compress:
        if header.file_type is not FileType.OBSERVATION:
            raise UnsupportedDialect("Only observation files can be compressed",
                                     file_type=header.file_type.value,
                                     version=header.version_text)
        lines = crinex.CrinexCompressor(options.crinex_order).compress_lines(lines)
    return '\n'.join(lines) + '\n'


def write(path: Union[str, os.PathLike], header: Header, container: TimeSeries,
          compress: bool = False, options: Optional[ParseOptions] = None) -> None:
    """Write a container to ``path``; a ``.gz`` suffix gzips the output"""
    text = serialize(header, container, compress, options)
    if str(path).endswith('.gz'):
        with gzip.open(path, 'wt', encoding='latin-1', newline='') as f:
            f.write(text)
    else:
        with open(path, 'w', encoding='latin-1', newline='') as f:
            f.write(text)
    logger.info("Wrote %s (%d epochs)", path, len(container))


def compress(text: str, order: int = crinex.DEFAULT_ORDER) -> str:
    """RINEX observation text to Compact RINEX text"""
    return crinex.compress(text, order)


def decompress(text: str) -> str:
    """Compact RINEX text to RINEX observation text"""
    return crinex.decompress(text)
