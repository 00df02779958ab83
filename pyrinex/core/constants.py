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

"""GNSS constellation identifiers and RINEX format constants"""

# GNSS System IDs
SYS_NONE = 0x00   # invalid / unknown
SYS_GPS = 0x01    # GPS
SYS_GLO = 0x02    # GLONASS
SYS_GAL = 0x04    # Galileo
SYS_BDS = 0x08    # BeiDou
SYS_QZS = 0x10    # QZSS
SYS_SBS = 0x20    # SBAS
SYS_IRN = 0x40    # IRNSS / NavIC
SYS_MIX = 0x80    # mixed-constellation file marker
SYS_ALL = 0xFF    # all systems (RINEX 2 shared observable catalog)

# Time reference epochs (calendar, in the named time system)
GPST0 = [1980, 1, 6, 0, 0, 0]  # GPS time reference epoch
GST0 = [1999, 8, 22, 0, 0, 0]  # Galileo time reference epoch
BDT0 = [2006, 1, 1, 0, 0, 0]   # BeiDou time reference epoch

# Time system offsets
GPS_TAI_OFFSET = 19.0          # TAI - GPST (seconds)
GPS_BDS_OFFSET = 14.0          # GPST - BDT (seconds)

WEEK_SECONDS = 604800
DAY_SECONDS = 86400

# Time system tags accepted in RINEX headers
TIME_SYSTEMS = ('GPS', 'GLO', 'GAL', 'BDS', 'QZS', 'IRN', 'UTC', 'TAI')

# RINEX line grammar
LABEL_COLUMN = 60              # header label starts at this column
END_OF_HEADER = 'END OF HEADER'
NO_VALUE_IONEX = 9999          # IONEX "no value available" marker

# Observation record arithmetic (F14.3 fields)
OBS_FIELD_WIDTH = 14
OBS_DECIMALS = 3
OBS_SCALE = 1000               # CRINEX integer units per observation unit


def sys2char(sys):
    """Convert system ID to character"""
    syschar = {
        SYS_GPS: 'G',
        SYS_GLO: 'R',
        SYS_GAL: 'E',
        SYS_BDS: 'C',
        SYS_QZS: 'J',
        SYS_SBS: 'S',
        SYS_IRN: 'I',
        SYS_MIX: 'M',
    }
    return syschar.get(sys, ' ')


def char2sys(c):
    """Convert character to system ID"""
    charmap = {
        'G': SYS_GPS,
        'R': SYS_GLO,
        'E': SYS_GAL,
        'C': SYS_BDS,
        'J': SYS_QZS,
        'S': SYS_SBS,
        'I': SYS_IRN,
        'M': SYS_MIX,
    }
    return charmap.get(c.upper(), SYS_NONE)


def sys2name(sys):
    """Human readable constellation name"""
    names = {
        SYS_GPS: 'GPS',
        SYS_GLO: 'GLONASS',
        SYS_GAL: 'Galileo',
        SYS_BDS: 'BeiDou',
        SYS_QZS: 'QZSS',
        SYS_SBS: 'SBAS',
        SYS_IRN: 'IRNSS',
        SYS_MIX: 'MIXED',
    }
    return names.get(sys, 'UNKNOWN')


def sys2timesys(sys):
    """Default time system in which a constellation expresses its epochs.

    GLONASS epochs are written in UTC(SU) by RINEX, tagged ``GLO``.
    SBAS epochs are expressed in GPS time.
    """
    timesys = {
        SYS_GPS: 'GPS',
        SYS_GLO: 'GLO',
        SYS_GAL: 'GAL',
        SYS_BDS: 'BDS',
        SYS_QZS: 'QZS',
        SYS_SBS: 'GPS',
        SYS_IRN: 'IRN',
    }
    return timesys.get(sys, 'GPS')
