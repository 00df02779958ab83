#!/usr/bin/env python3
"""Test suite for Compact RINEX decompression and compression"""

import unittest

from pyrinex.core.errors import DesyncError, MissingMandatoryField, UnsupportedDialect
from pyrinex.io.crinex import (CrinexCompressor, CrinexDecompressor, DataArc,
                               apply_text_diff, compress, decompress,
                               format_scaled, text_diff, to_scaled)
from pyrinex.io.rinex import parse_text

HEADER = [
    f"{'3.04':>9}{'':11}{'OBSERVATION DATA':<20}{'G: GPS':<20}RINEX VERSION / TYPE",
    f"{'pyrinex':<20}{'test':<20}{'20240101 000000 UTC':<20}PGM / RUN BY / DATE",
    f"{'G    2 C1C L1C':<60}SYS / # / OBS TYPES",
    f"{'':60}END OF HEADER",
]

CRX_HEADER = [
    f"{'3.0':<20}{'COMPACT RINEX FORMAT':<40}CRINEX VERS   / TYPE",
    f"{'pyrinex':<40}{'':<20}CRINEX PROG / DATE",
] + HEADER

BODY = [
    "> 2024 01 01 00 00  0.0000000  0  2",
    "G01  23456789.123 7 123456789.456 7",
    "G02  21000000.000 6 110000000.250 6",
    "> 2024 01 01 00 00 30.0000000  0  2",
    "G01  23456790.123 7 123456794.706 7",
    "G02  21000002.500 6 110000013.387 6",
]

CRX_BODY = [
    "> 2024 01 01 00 00  0.0000000  0  2      G01G02",
    "",
    "3&23456789123 3&123456789456  7 7",
    "3&21000000000 3&110000000250  6 6",
    " " * 19 + "3",
    "",
    "1000 5250",
    "2500 13137",
]

CRX_RESET_BODY = CRX_BODY[:4] + [
    "> 2024 01 01 00 00 30.0000000  0  2      G01G02",
    "",
    "3&23456790123 3&123456794706  7 7",
    "3&21000002500 3&110000013387  6 6",
]


def text(lines):
    return '\n'.join(lines) + '\n'


PLAIN = text(HEADER + BODY)
CRX_DIFF = text(CRX_HEADER + CRX_BODY)
CRX_RESET = text(CRX_HEADER + CRX_RESET_BODY)

V2_HEADER = [
    f"{'2.11':>9}{'':11}{'OBSERVATION DATA':<20}{'G (GPS)':<20}RINEX VERSION / TYPE",
    f"{'pyrinex':<20}{'test':<20}{'20240101 000000 UTC':<20}PGM / RUN BY / DATE",
    f"{'     2    C1    L1':<60}# / TYPES OF OBSERV",
    f"{'':60}END OF HEADER",
]

CRX1_HEADER = [
    f"{'1.0':<20}{'COMPACT RINEX FORMAT':<40}CRINEX VERS   / TYPE",
    f"{'pyrinex':<40}{'':<20}CRINEX PROG / DATE",
] + V2_HEADER

# G02 drops out at 00:00:30 and comes back at 00:01:00
V2_BODY = [
    f"{' 24  1  1  0  0  0.0000000  0  2G01G02':<68} 0.000123456",
    "  23456789.123 7 123456789.456 7",
    "  21000000.000 6 110000000.250 6",
    f"{' 24  1  1  0  0 30.0000000  0  2G01G03':<68} 0.000123466",
    "  23456790.123 7 123456794.706 7",
    "  22000000.000 5 115000000.000 5",
    f"{' 24  1  1  0  1  0.0000000  0  2G01G02':<68} 0.000123476",
    "  23456791.123 7 123456799.956 7",
    "  21000005.000 6 110000026.524 6",
]

CRX1_BODY = [
    "&24  1  1  0  0  0.0000000  0  2G01G02",
    "3&123456",
    "3&23456789123 3&123456789456  7 7",
    "3&21000000000 3&110000000250  6 6",
    " " * 16 + "3" + " " * 20 + "3",
    "10",
    "1000 5250",
    "3&22000000000 3&115000000000  5 5",
    " " * 14 + "1 &" + " " * 20 + "2",
    "0",
    "0 0",
    "3&21000005000 3&110000026524  6 6",
]

PLAIN_V2 = text(V2_HEADER + V2_BODY)
CRX1 = text(CRX1_HEADER + CRX1_BODY)

SATS = [f"G{i:02d}" for i in range(1, 14)]

WIDE_BODY = [
    " 24  1  1  0  0  0.0000000  0 13" + ''.join(SATS[:12]),
    " " * 32 + SATS[12],
] + [f"{20000000 + i:14.3f}  {100000000 + i:14.3f}" for i in range(1, 14)]

CRX1_WIDE_BODY = [
    "&24  1  1  0  0  0.0000000  0 13" + ''.join(SATS),
    "",
] + [f"3&{20000000000 + i * 1000} 3&{100000000000 + i * 1000}" for i in range(1, 14)]


class TestHelpers(unittest.TestCase):
    """Field level helpers"""

    def test_text_diff(self):
        self.assertEqual(text_diff("abc def", "abX"), "  X &&&")
        self.assertEqual(apply_text_diff("abc def", "  X &&&"), "abX")
        self.assertEqual(text_diff("same", "same"), "")
        self.assertEqual(apply_text_diff("same", ""), "same")

    def test_to_scaled(self):
        self.assertEqual(to_scaled("23456789.123", 3), 23456789123)
        self.assertEqual(to_scaled(" -0.5", 3), -500)
        self.assertEqual(to_scaled("12", 3), 12000)
        with self.assertRaises(ValueError):
            to_scaled("1.2345", 3)
        with self.assertRaises(ValueError):
            to_scaled("-", 3)

    def test_format_scaled(self):
        self.assertEqual(format_scaled(23456789123, 3, 14), "  23456789.123")
        self.assertEqual(format_scaled(-1500, 3, 14), "        -1.500")
        self.assertEqual(format_scaled(5, 3, 14), "         0.005")

    def test_format_scaled_overflow(self):
        with self.assertLogs('pyrinex.io.crinex', level='WARNING') as logs:
            self.assertEqual(format_scaled(123456789012345, 3, 14), "123456789012.3")
        self.assertIn("overflows", logs.output[0])


class TestDataArc(unittest.TestCase):

    def test_encode_decode(self):
        values = [100, 110, 125, 145, 170, 150]
        encoder = DataArc(3, values[0])
        diffs = [encoder.encode(v) for v in values[1:]]
        self.assertEqual(diffs[:3], [10, 5, 0])

        decoder = DataArc(3, values[0])
        self.assertEqual([decoder.update(d) for d in diffs], values[1:])

    def test_zero_order_carries_values(self):
        arc = DataArc(0, 7)
        self.assertEqual(arc.encode(9), 9)
        self.assertEqual(arc.update(11), 11)
        self.assertEqual(arc.value, 11)


class TestDecompression(unittest.TestCase):
    """Decompression of a two epoch file"""

    def test_differential(self):
        self.assertEqual(decompress(CRX_DIFF), PLAIN)

    def test_reset_epochs(self):
        self.assertEqual(decompress(CRX_RESET), PLAIN)

    def test_streaming_small_chunks(self):
        dec = CrinexDecompressor()
        lines = []
        for i in range(0, len(CRX_DIFF), 7):
            lines.extend(dec.feed(CRX_DIFF[i:i + 7]))
        lines.extend(dec.close())
        self.assertEqual(text(lines), PLAIN)
        self.assertEqual(dec.header.crinex.version, "3.0")
        self.assertEqual(dec.header.crinex.program, "pyrinex")

    def test_epoch_values(self):
        dec = CrinexDecompressor()
        epochs = dec.feed_epochs(CRX_DIFF) + dec.close_epochs()
        self.assertEqual(len(epochs), 2)
        second = epochs[1]
        self.assertEqual(second.satellites, ['G01', 'G02'])
        self.assertEqual(second.values[0], [23456790123, 123456794706])
        self.assertEqual(second.flags[1], " 6 6")
        self.assertIsNone(second.clock)
        self.assertEqual(second.flag, 0)
        self.assertEqual(second.count, 2)

    def test_difference_before_initialization(self):
        broken = text(CRX_HEADER + CRX_BODY[4:])
        with self.assertRaises(DesyncError) as ctx:
            decompress(broken)
        self.assertEqual(ctx.exception.line_number, len(CRX_HEADER) + 1)

    def test_truncated_stream(self):
        with self.assertRaises(DesyncError):
            decompress(text(CRX_HEADER + CRX_BODY[:-1]))

    def test_arc_difference_without_start(self):
        body = list(CRX_BODY)
        body[2] = "1000 5250"
        with self.assertRaises(DesyncError):
            decompress(text(CRX_HEADER + body))

    def test_not_compact(self):
        with self.assertRaises(MissingMandatoryField):
            decompress(PLAIN)

    def test_unknown_compact_version(self):
        lines = [f"{'2.0':<20}{'COMPACT RINEX FORMAT':<40}CRINEX VERS   / TYPE"] + CRX_HEADER[1:]
        with self.assertRaises(UnsupportedDialect):
            decompress(text(lines))


class TestCompression(unittest.TestCase):

    def test_differential(self):
        self.assertEqual(compress(PLAIN), CRX_DIFF)

    def test_reset_every_epoch(self):
        self.assertEqual(compress(PLAIN, reset_every=1), CRX_RESET)

    def test_round_trip(self):
        self.assertEqual(decompress(compress(PLAIN, order=1)), PLAIN)

    def test_program_line(self):
        lines = CrinexCompressor(program='gen', date='2024').compress_lines(PLAIN.splitlines())
        self.assertTrue(lines[1].startswith('gen'))
        self.assertEqual(lines[1][40:44], '2024')


class TestCompactRinex1(unittest.TestCase):
    """RINEX 2 files in Compact RINEX 1.0"""

    def test_decompress(self):
        self.assertEqual(decompress(CRX1), PLAIN_V2)

    def test_compress(self):
        self.assertEqual(compress(PLAIN_V2), CRX1)

    def test_clock_offsets(self):
        dec = CrinexDecompressor()
        epochs = dec.feed_epochs(CRX1) + dec.close_epochs()
        self.assertEqual([epoch.clock for epoch in epochs], [123456, 123466, 123476])
        _, series = parse_text(CRX1)
        self.assertAlmostEqual(series.last[1].clock_offset, 0.000123476)

    def test_satellite_reappears_with_new_arc(self):
        dec = CrinexDecompressor()
        epochs = dec.feed_epochs(CRX1) + dec.close_epochs()
        self.assertEqual([epoch.satellites for epoch in epochs],
                         [['G01', 'G02'], ['G01', 'G03'], ['G01', 'G02']])
        self.assertEqual(epochs[2].values[1], [21000005000, 110000026524])
        self.assertEqual(epochs[2].flags[1], " 6 6")

    def test_difference_for_dropped_satellite(self):
        body = list(CRX1_BODY)
        body[-1] = "5000 26274"
        with self.assertRaises(DesyncError) as ctx:
            decompress(text(CRX1_HEADER + body))
        self.assertEqual(ctx.exception.line_number, len(CRX1_HEADER) + len(body))

    def test_same_container_as_plain(self):
        self.assertEqual(parse_text(CRX1)[1], parse_text(PLAIN_V2)[1])

    def test_satellite_list_overflow(self):
        wide = text(CRX1_HEADER + CRX1_WIDE_BODY)
        self.assertEqual(decompress(wide), text(V2_HEADER + WIDE_BODY))
        self.assertEqual(compress(text(V2_HEADER + WIDE_BODY)), wide)
        _, series = parse_text(wide)
        self.assertEqual(len(series.first[1].data), 13)


if __name__ == '__main__':
    unittest.main()
