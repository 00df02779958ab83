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

"""Line cursor shared by the body decoders"""

from typing import List, Optional, Type

from ..core.errors import RecordDecodeError


class LineStream:
    """Cursor over decoded text lines with one-line lookahead.

    Parameters
    ----------
    lines : list of str
        Body lines, without line terminators
    first_line_number : int
        Line number of ``lines[0]`` in the whole text, for error context
    """

    def __init__(self, lines: List[str], first_line_number: int = 1):
        self._lines = lines
        self._pos = 0
        self._first = first_line_number

    def next(self) -> Optional[str]:
        """Next line, or None at end of input"""
        if self._pos >= len(self._lines):
            return None
        line = self._lines[self._pos]
        self._pos += 1
        return line

    def peek(self) -> Optional[str]:
        if self._pos >= len(self._lines):
            return None
        return self._lines[self._pos]

    def skip_blank(self) -> None:
        while self._pos < len(self._lines) and not self._lines[self._pos].strip():
            self._pos += 1

    @property
    def line_number(self) -> int:
        """Line number of the line last returned by :meth:`next`"""
        return self._first + self._pos - 1


class BodyDecoder:
    """Common error reporting of the body record decoders"""

    def __init__(self, header):
        self.header = header
        self.layout = header.dialect

    def error(self, message: str, stream: LineStream, line: Optional[str],
              cls: Type[RecordDecodeError] = RecordDecodeError, **extra) -> RecordDecodeError:
        return cls(message, file_type=self.header.file_type.value,
                   version=self.header.version_text, line_number=stream.line_number,
                   line=line, dialect=self.layout.dialect, **extra)
