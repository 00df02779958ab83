#!/usr/bin/env python3
"""Test suite for meteorological record decoding and encoding"""

import unittest

from pyrinex.core.constants import SYS_ALL
from pyrinex.core.data_structures import EpochKey, FileType
from pyrinex.core.errors import MissingMandatoryField, RecordDecodeError
from pyrinex.core.time import GNSSTime
from pyrinex.io.header import format_header, parse_header
from pyrinex.io.lines import LineStream
from pyrinex.io.meteo import MeteoDecoder, format_epoch


def h(content, label):
    return f"{content:<60}{label}"


def met(*values):
    return ''.join(' ' * 7 if v is None else f"{v:7.1f}" for v in values)


CODES = ['PR', 'TD', 'HR', 'ZW', 'ZD', 'ZT', 'WD', 'WS', 'RI', 'HI']

HEADER = [
    h("     3.04           METEOROLOGICAL DATA", "RINEX VERSION / TYPE"),
    h("pyrinex             test", "PGM / RUN BY / DATE"),
    h("TEST", "MARKER NAME"),
    h("    10" + ''.join(f"{c:>6}" for c in CODES[:9]), "# / TYPES OF OBSERV"),
    h("      " + f"{CODES[9]:>6}", "# / TYPES OF OBSERV"),
    h(f"{'PAROSCIENTIFIC':<20}{'740-16B':<20}{'':6}{0.2:7.1f}{'':4}PR", "SENSOR MOD/TYPE/ACC"),
    h(f"{-3947762.7496:14.4f}{3364399.8789:14.4f}{3699428.5111:14.4f}{1000.0:14.4f} PR",
      "SENSOR POS XYZ/H"),
    h("", "END OF HEADER"),
]

BODY = [
    " 2024  1  1  0  0  0" + met(1013.2, 10.5, 55.0, 0.1, None, 2.3, 180.0, 3.5),
    "    " + met(0.0, 1.0),
    " 2024  1  1  0  5  0" + met(1013.0, 10.7, 54.0, 0.1, 2.2, 2.3, 175.0, 3.0),
    "    " + met(0.0),
]


def decode(lines):
    header, n = parse_header(lines)
    return header, list(MeteoDecoder(header).decode(LineStream(lines[n:], n + 1)))


class TestMeteo(unittest.TestCase):

    def setUp(self):
        self.header, self.epochs = decode(HEADER + BODY)

    def test_header(self):
        hdr = self.header
        self.assertIs(hdr.file_type, FileType.METEO)
        self.assertEqual(hdr.codes(SYS_ALL), CODES)
        sensor = hdr.meteo_sensors['PR']
        self.assertEqual(sensor.model, 'PAROSCIENTIFIC')
        self.assertEqual(sensor.accuracy, 0.2)
        self.assertEqual(sensor.position[3], 1000.0)
        again, _ = parse_header(format_header(hdr))
        self.assertEqual(again, hdr)

    def test_values(self):
        self.assertEqual(len(self.epochs), 2)
        key, payload = self.epochs[0]
        self.assertEqual(key, EpochKey(GNSSTime.from_calendar(2024, 1, 1)))
        self.assertEqual(payload['PR'], 1013.2)
        self.assertEqual(payload['HI'], 1.0)
        self.assertNotIn('ZD', payload.values)

    def test_missing_trailing_values(self):
        payload = self.epochs[1][1]
        self.assertEqual(payload['RI'], 0.0)
        self.assertNotIn('HI', payload.values)

    def test_format_round_trip(self):
        lines = []
        for key, payload in self.epochs:
            lines.extend(format_epoch(self.header, key, payload))
        self.assertEqual(lines, BODY)

    def test_truncated_epoch(self):
        with self.assertRaises(RecordDecodeError):
            decode(HEADER + BODY[:1])

    def test_invalid_value(self):
        body = [BODY[0][:20] + "   abcd" + BODY[0][27:], BODY[1]]
        with self.assertRaises(RecordDecodeError) as ctx:
            decode(HEADER + body)
        self.assertEqual(ctx.exception.dialect, "MET/3")

    def test_no_observables(self):
        header = [HEADER[0], HEADER[-1]]
        with self.assertRaises(MissingMandatoryField):
            decode(header)


class TestMeteoRinex2(unittest.TestCase):

    def test_decode(self):
        header = [
            h("     2.11           METEOROLOGICAL DATA", "RINEX VERSION / TYPE"),
            h("     3    PR    TD    HR", "# / TYPES OF OBSERV"),
            h("", "END OF HEADER"),
        ]
        body = [" 24  1  1  0  0  0" + met(1013.2, 10.5, 55.0)]
        hdr, epochs = decode(header + body)
        self.assertEqual(hdr.dialect.dialect, "MET/2")
        self.assertEqual(epochs[0][1]['TD'], 10.5)
        self.assertEqual(format_epoch(hdr, *epochs[0]), body)


if __name__ == '__main__':
    unittest.main()
