#!/usr/bin/env python3
"""Test suite for header parsing and writing"""

import unittest

from pyrinex.core.constants import SYS_GLO, SYS_GPS
from pyrinex.core.data_structures import FileType
from pyrinex.core.errors import (MalformedHeaderLine, MissingMandatoryField,
                                 UnsupportedDialect)
from pyrinex.core.time import GNSSTime
from pyrinex.io.header import HeaderParser, format_header, parse_header


def h(content, label):
    return f"{content:<60}{label}"


CODES = ['C1C', 'L1C', 'D1C', 'S1C', 'C2W', 'L2W', 'D2W', 'S2W', 'C5Q', 'L5Q', 'D5Q',
         'S5Q', 'C1W', 'S1W']

OBS3_HEADER = [
    h("     3.04           OBSERVATION DATA    G: GPS", "RINEX VERSION / TYPE"),
    h("pyrinex             tester              20240101 000000 UTC", "PGM / RUN BY / DATE"),
    h("fixture for header tests", "COMMENT"),
    h("TEST", "MARKER NAME"),
    h("12345M001", "MARKER NUMBER"),
    h("GEODETIC", "MARKER TYPE"),
    h("observer            agency", "OBSERVER / AGENCY"),
    h("1234                TRIMBLE NETR9       5.45", "REC # / TYPE / VERS"),
    h("5678                TRM59800.00     NONE", "ANT # / TYPE"),
    h(f"{-3947762.7496:14.4f}{3364399.8789:14.4f}{3699428.5111:14.4f}", "APPROX POSITION XYZ"),
    h("        0.0000        0.0000        0.0000", "ANTENNA: DELTA H/E/N"),
    h("G   14 " + ' '.join(CODES[:13]), "SYS / # / OBS TYPES"),
    h("       " + CODES[13], "SYS / # / OBS TYPES"),
    h("    30.000", "INTERVAL"),
    h("  2024     1     1     0     0    0.0000000     GPS", "TIME OF FIRST OBS"),
    h("    18", "LEAP SECONDS"),
    h(" 12", "# OF SATELLITES"),
    h("", "END OF HEADER"),
]


class TestObservationHeader(unittest.TestCase):
    """RINEX 3 observation header"""

    def setUp(self):
        self.header, self.consumed = parse_header(OBS3_HEADER + ["> body line"])

    def test_version_line(self):
        hdr = self.header
        self.assertEqual(hdr.version, (3, 4))
        self.assertEqual(hdr.version_text, "3.04")
        self.assertIs(hdr.file_type, FileType.OBSERVATION)
        self.assertEqual(hdr.constellation, SYS_GPS)
        self.assertEqual(hdr.dialect.dialect, "OBS/3")

    def test_body_offset(self):
        self.assertEqual(self.consumed, len(OBS3_HEADER))

    def test_fields(self):
        hdr = self.header
        self.assertEqual(hdr.program, "pyrinex")
        self.assertEqual(hdr.run_by, "tester")
        self.assertEqual(hdr.comments, ["fixture for header tests"])
        self.assertEqual(hdr.marker_name, "TEST")
        self.assertEqual(hdr.marker_type, "GEODETIC")
        self.assertEqual(hdr.agency, "agency")
        self.assertEqual(hdr.receiver, ("1234", "TRIMBLE NETR9", "5.45"))
        self.assertEqual(hdr.approx_position, (-3947762.7496, 3364399.8789, 3699428.5111))
        self.assertEqual(hdr.interval, 30.0)
        self.assertEqual(hdr.leap_seconds, 18)
        self.assertEqual(hdr.time_of_first_obs, GNSSTime.from_calendar(2024, 1, 1))
        self.assertEqual(hdr.epoch_time_system(), 'GPS')

    def test_catalog_continuation(self):
        self.assertEqual(self.header.codes(SYS_GPS), CODES)
        self.assertEqual(self.header.codes(SYS_GLO), [])

    def test_verbatim_records(self):
        self.assertEqual(self.header.unknown, [("# OF SATELLITES", " 12")])

    def test_round_trip(self):
        lines = format_header(self.header)
        again, consumed = parse_header(lines)
        self.assertEqual(again, self.header)
        self.assertEqual(consumed, len(lines))
        self.assertTrue(lines[0].endswith("RINEX VERSION / TYPE"))
        self.assertTrue(lines[-1].endswith("END OF HEADER"))
        self.assertTrue(all(len(line) <= 80 for line in lines))


class TestHeaderErrors(unittest.TestCase):

    def test_missing_version(self):
        with self.assertRaises(MissingMandatoryField):
            parse_header([h("TEST", "MARKER NAME"), h("", "END OF HEADER")])

    def test_missing_end_of_header(self):
        with self.assertRaises(MissingMandatoryField) as ctx:
            parse_header(OBS3_HEADER[:-1])
        self.assertEqual(ctx.exception.version, "3.04")

    def test_empty_input(self):
        with self.assertRaises(MissingMandatoryField):
            parse_header([])

    def test_malformed_numeric_field(self):
        lines = list(OBS3_HEADER)
        lines[9] = h(f"{-3947762.7496:14.4f}   abc", "APPROX POSITION XYZ")
        with self.assertRaises(MalformedHeaderLine) as ctx:
            parse_header(lines)
        self.assertEqual(ctx.exception.line_number, 10)

    def test_catalog_count_mismatch(self):
        lines = list(OBS3_HEADER)
        del lines[12]
        with self.assertRaises(MalformedHeaderLine):
            parse_header(lines)

    def test_unsupported_version(self):
        lines = [h("     9.00           OBSERVATION DATA    G: GPS", "RINEX VERSION / TYPE")]
        with self.assertRaises(UnsupportedDialect):
            HeaderParser().push(lines[0])

    def test_unknown_file_type(self):
        with self.assertRaises(UnsupportedDialect):
            parse_header([h("     3.04           X: SOMETHING", "RINEX VERSION / TYPE")])

    def test_unknown_label_is_kept(self):
        lines = OBS3_HEADER[:-1] + [h("vendor data", "MY VENDOR LABEL"), OBS3_HEADER[-1]]
        with self.assertLogs('pyrinex.io.header', level='WARNING'):
            hdr, _ = parse_header(lines)
        self.assertIn(("MY VENDOR LABEL", "vendor data"), hdr.unknown)
        self.assertIn(h("vendor data", "MY VENDOR LABEL"), format_header(hdr))


class TestOtherHeaders(unittest.TestCase):

    def test_rinex2_glonass_navigation(self):
        hdr, _ = parse_header([
            h("     2.11           G: GLONASS NAV DATA", "RINEX VERSION / TYPE"),
            h("", "END OF HEADER"),
        ])
        self.assertIs(hdr.file_type, FileType.NAVIGATION)
        self.assertEqual(hdr.constellation, SYS_GLO)
        self.assertEqual(hdr.dialect.dialect, "NAV/2/R")
        self.assertEqual(format_header(hdr)[0][20:39], "G: GLONASS NAV DATA")

    def test_rinex3_navigation_corrections(self):
        hdr, _ = parse_header([
            h("     3.04           N: GNSS NAV DATA    M: MIXED", "RINEX VERSION / TYPE"),
            h("GPSA   1.1176E-08  1.4901E-08 -5.9605E-08 -1.1921E-07", "IONOSPHERIC CORR"),
            h("    18", "LEAP SECONDS"),
            h("", "END OF HEADER"),
        ])
        self.assertEqual(hdr.ionospheric_corrections['GPSA'][0], 1.1176e-08)
        again, _ = parse_header(format_header(hdr))
        self.assertEqual(again, hdr)

    def test_ionex_grid(self):
        hdr, _ = parse_header([
            h("     1.0            IONOSPHERE MAPS     GPS", "IONEX VERSION / TYPE"),
            h("  2024     1     1     0     0     0", "EPOCH OF FIRST MAP"),
            h("  2024     1     1     2     0     0", "EPOCH OF LAST MAP"),
            h("  7200", "INTERVAL"),
            h("     2", "# OF MAPS IN FILE"),
            h("     2", "MAP DIMENSION"),
            h("   450.0 450.0   0.0", "HGT1 / HGT2 / DHGT"),
            h("    10.0   0.0  -5.0", "LAT1 / LAT2 / DLAT"),
            h("     0.0  20.0  10.0", "LON1 / LON2 / DLON"),
            h("    -1", "EXPONENT"),
            h("", "END OF HEADER"),
        ])
        grid = hdr.ionex
        self.assertIs(hdr.file_type, FileType.IONEX)
        self.assertEqual(hdr.version_text, "1.0")
        self.assertEqual(grid.shape, (1, 3, 3))
        self.assertEqual(list(grid.latitude_values), [10.0, 5.0, 0.0])
        self.assertEqual(grid.number_of_maps, 2)
        self.assertEqual(hdr.interval, 7200.0)
        self.assertEqual(hdr.epoch_time_system(), 'UTC')
        again, _ = parse_header(format_header(hdr))
        self.assertEqual(again, hdr)


if __name__ == '__main__':
    unittest.main()
