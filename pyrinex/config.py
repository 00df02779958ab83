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

"""Parsing options"""

from dataclasses import dataclass, fields
from typing import Dict, Optional

from .core.data_structures import MergePolicy


@dataclass
class ParseOptions:
    """Options controlling how byte sources are read and containers merged.

    Attributes
    ----------
    crinex_auto : bool
        Detect Hatanaka-compressed input by its ``CRINEX VERS / TYPE`` line
    gzip_auto : bool
        Inflate gzip input detected by its magic bytes
    crinex_order : int
        Difference order used when serializing to CRINEX
    merge_policy : MergePolicy
        Policy used by :func:`pyrinex.merge` when none is given
    log_level : str, optional
        When set, ``parse`` configures the ``pyrinex`` logger at this level
    log_config : dict, optional
        When set, ``parse`` applies it with :func:`pyrinex.logger.setup_logger_from_config`
        (per-module levels, log file, console)
    """
    crinex_auto: bool = True
    gzip_auto: bool = True
    crinex_order: int = 3
    merge_policy: MergePolicy = MergePolicy.FAIL_ON_CONFLICT
    log_level: Optional[str] = None
    log_config: Optional[Dict] = None

    def __post_init__(self):
        self.merge_policy = MergePolicy.parse(self.merge_policy)

    @classmethod
    def from_dict(cls, config: dict) -> 'ParseOptions':
        """Build options from a plain mapping, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config.items() if k in known})
