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

"""
pyrinex - RINEX parsing and data-model engine

Reads RINEX observation, navigation, meteorological, clock and IONEX files
(versions 2, 3 and 4, optionally Hatanaka-compressed and gzipped) into a
time-indexed, mergeable data model, and writes them back.
"""

__version__ = "1.0.0"
__author__ = "pyrinex Development Team"
__title__ = "pyrinex"
__description__ = "RINEX parsing and time-series data model"

from .logger import TRACE, LogContext, get_logger, setup_logger
from .config import ParseOptions
from .core import *
from .io import (Header, compress, decompress, iterate, merge, parse, parse_text,
                 serialize, write)
