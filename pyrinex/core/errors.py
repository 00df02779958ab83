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

"""Error taxonomy for RINEX parsing, decompression and container operations.

Every error carries the structured context needed to locate the failure
without re-running the parser: file type, format version, 1-based line number
in the (decompressed) text stream, the raw line and the active dialect.
I/O errors raised by the byte source are never wrapped.
"""

from typing import Optional


class RinexError(Exception):
    """Base class of all pyrinex errors.

    Parameters
    ----------
    message : str
        Human readable description
    file_type : str, optional
        RINEX file type letter (O, N, M, I, C) or name
    version : str, optional
        Format version, e.g. ``"3.04"``
    line_number : int, optional
        1-based line number of the offending line
    line : str, optional
        Raw text of the offending line
    dialect : str, optional
        Active grammar, e.g. ``"OBS/3"`` or ``"NAV/4/GPS-CNAV"``
    """

    def __init__(self, message: str, *, file_type: Optional[str] = None,
                 version: Optional[str] = None, line_number: Optional[int] = None,
                 line: Optional[str] = None, dialect: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file_type = file_type
        self.version = version
        self.line_number = line_number
        self.line = line
        self.dialect = dialect

    def with_context(self, **context) -> 'RinexError':
        """Fill in context attributes that are still unset, return self"""
        for key, value in context.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown error context attribute: {key}")
            if getattr(self, key) is None and value is not None:
                setattr(self, key, value)
        return self

    @property
    def context(self) -> dict:
        return {
            'file_type': self.file_type,
            'version': self.version,
            'line_number': self.line_number,
            'line': self.line,
            'dialect': self.dialect,
        }

    def __str__(self):
        parts = []
        if self.file_type is not None:
            parts.append(f"type={self.file_type}")
        if self.version is not None:
            parts.append(f"version={self.version}")
        if self.dialect is not None:
            parts.append(f"dialect={self.dialect}")
        if self.line_number is not None:
            parts.append(f"line {self.line_number}")
        text = self.message
        if parts:
            text = f"{text} [{', '.join(parts)}]"
        if self.line is not None:
            text = f"{text}: {self.line.rstrip()!r}"
        return text


class UnsupportedDialect(RinexError):
    """Unknown version / file type / constellation combination"""


class MissingMandatoryField(RinexError):
    """Mandatory header record (version/type, END OF HEADER) absent"""


class MalformedHeaderLine(RinexError):
    """Header line whose numeric or date fields cannot be parsed"""


class DesyncError(RinexError):
    """CRINEX stream no longer consistent with the decompressor state"""


class RecordDecodeError(RinexError):
    """Body line that cannot be matched to the active grammar"""


class EpochSatelliteCountMismatch(RecordDecodeError):
    """Satellite count declared on an epoch line differs from lines present"""

    def __init__(self, message: str, *, expected: Optional[int] = None,
                 found: Optional[int] = None, **context):
        super().__init__(message, **context)
        self.expected = expected
        self.found = found


class NonMonotonicEpoch(RinexError):
    """Epoch inserted before the last epoch of an append-only container"""


class MergeConflict(RinexError):
    """Two containers disagree on a value at the same epoch"""
