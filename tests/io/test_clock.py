#!/usr/bin/env python3
"""Test suite for clock RINEX decoding and encoding"""

import unittest

from pyrinex.core.data_structures import ClockRecord, EpochKey, FileType
from pyrinex.core.errors import RecordDecodeError
from pyrinex.core.time import GNSSTime
from pyrinex.io.clock import ClockDecoder, format_epoch, format_record
from pyrinex.io.header import format_header, parse_header
from pyrinex.io.lines import LineStream


def h(content, label):
    return f"{content:<60}{label}"


def d19(*values):
    return ' '.join(f"{v:19.12E}" for v in values)


HEADER = [
    h("     3.04           C                   G", "RINEX VERSION / TYPE"),
    h("pyrinex             test", "PGM / RUN BY / DATE"),
    h("   GPS", "TIME SYSTEM ID"),
    h("     2    AR    AS", "# / TYPES OF DATA"),
    h("TST  test analysis center", "ANALYSIS CENTER"),
    h("", "END OF HEADER"),
]

BODY = [
    "AR ALGO      2024 01 01 00 00  0.000000  2   " + d19(1.2345e-6, 1.0e-10),
    "AS G01       2024 01 01 00 00  0.000000  4   " + d19(-2.5e-4, 2.0e-11),
    d19(1.0e-12, 3.0e-13),
    "AR ALGO      2024 01 01 00 00 30.000000  1   " + d19(1.2346e-6),
]


def decode(lines):
    header, n = parse_header(lines)
    return header, list(ClockDecoder(header).decode(LineStream(lines[n:], n + 1)))


class TestClock(unittest.TestCase):

    def setUp(self):
        self.header, self.records = decode(HEADER + BODY)

    def test_header(self):
        hdr = self.header
        self.assertIs(hdr.file_type, FileType.CLOCK)
        self.assertEqual(hdr.dialect.dialect, "CLK/3")
        self.assertEqual(hdr.clock_data_types, ['AR', 'AS'])
        self.assertEqual(hdr.time_system, 'GPS')
        self.assertEqual(hdr.analysis_center, 'TST  test analysis center')
        again, _ = parse_header(format_header(hdr))
        self.assertEqual(again, hdr)

    def test_records(self):
        self.assertEqual(len(self.records), 3)
        key, payload = self.records[0]
        self.assertEqual(key, EpochKey(GNSSTime.from_calendar(2024, 1, 1)))
        self.assertEqual(payload[('AR', 'ALGO')], ClockRecord(1.2345e-6, 1.0e-10))

    def test_continuation_line(self):
        record = self.records[1][1][('AS', 'G01')]
        self.assertEqual(record.rate, 1.0e-12)
        self.assertEqual(record.rate_sigma, 3.0e-13)
        self.assertIsNone(record.accel)
        self.assertEqual(record.values, (-2.5e-4, 2.0e-11, 1.0e-12, 3.0e-13))

    def test_single_value(self):
        record = self.records[2][1][('AR', 'ALGO')]
        self.assertIsNone(record.bias_sigma)
        self.assertEqual(record.values, (1.2346e-6,))

    def test_format_round_trip(self):
        lines = []
        for key, payload in self.records:
            lines.extend(format_epoch(self.header, key, payload))
        self.assertEqual(lines, BODY)

    def test_short_name_layout(self):
        header = list(HEADER)
        header[0] = h("     3.00           C                   G", "RINEX VERSION / TYPE")
        hdr, _ = parse_header(header)
        lines = format_record(hdr, GNSSTime.from_calendar(2024, 1, 1), 'AR', 'ALGO',
                              ClockRecord(1.0e-6))
        self.assertEqual(lines, ["AR ALGO 2024 01 01 00 00  0.000000  1   " + d19(1.0e-6)])


class TestClockErrors(unittest.TestCase):

    def test_value_count_mismatch(self):
        with self.assertRaises(RecordDecodeError):
            decode(HEADER + ["AR ALGO      2024 01 01 00 00  0.000000  2   " + d19(1.0e-6)])

    def test_truncated_continuation(self):
        with self.assertRaises(RecordDecodeError):
            decode(HEADER + BODY[1:2])

    def test_unknown_record_type(self):
        with self.assertRaises(RecordDecodeError):
            decode(HEADER + ["XX ALGO      2024 01 01 00 00  0.000000  1   " + d19(1.0e-6)])

    def test_invalid_count(self):
        with self.assertRaises(RecordDecodeError):
            decode(HEADER + ["AR ALGO      2024 01 01 00 00  0.000000  9   " + d19(1.0e-6)])

    def test_invalid_value(self):
        with self.assertRaises(RecordDecodeError) as ctx:
            decode(HEADER + ["AR ALGO      2024 01 01 00 00  0.000000  1   1.0e-6x"])
        self.assertEqual(ctx.exception.line_number, len(HEADER) + 1)


if __name__ == '__main__':
    unittest.main()
