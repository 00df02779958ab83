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

"""Satellite identifiers.

RINEX identifies a space vehicle with a constellation letter followed by a
two-digit PRN (``G07``, ``R12``, ``S20``). RINEX 2 observation files may omit
the letter (GPS is implied) or pad the PRN with a blank (``G 7``). SBAS
identifiers carry the PRN minus 100.

:class:`SV` is the identifier used as payload key throughout pyrinex.
"""

from dataclasses import dataclass

from .constants import SYS_GPS, SYS_MIX, SYS_NONE, char2sys, sys2char


@dataclass(frozen=True, order=True)
class SV:
    """Space vehicle identifier: constellation plus RINEX PRN.

    Attributes
    ----------
    system : int
        Constellation ID (``SYS_GPS``, ``SYS_GLO`` ...)
    prn : int
        PRN as written in RINEX (SBAS uses PRN - 100)
    """
    system: int
    prn: int

    @classmethod
    def parse(cls, text: str, default_system: int = SYS_GPS) -> 'SV':
        """Parse a 3-character RINEX satellite identifier.

        A blank constellation letter falls back to ``default_system``.
        Raises ``ValueError`` when the text is not a satellite identifier.
        """
        text = text.rstrip()
        if not text.strip():
            raise ValueError("empty satellite identifier")
        head = text[0]
        if head.isdigit():
            system = default_system
            number = text
        elif head == ' ':
            system = default_system
            number = text[1:]
        else:
            system = char2sys(head)
            number = text[1:]
        if system in (SYS_NONE, SYS_MIX):
            raise ValueError(f"unknown constellation in satellite identifier '{text}'")
        number = number.strip()
        if not number.isdigit():
            raise ValueError(f"invalid PRN in satellite identifier '{text}'")
        return cls(system, int(number))

    @property
    def char(self) -> str:
        return sys2char(self.system)

    def __str__(self):
        return f"{self.char}{self.prn:02d}"

    def __repr__(self):
        return f"SV('{self}')"
