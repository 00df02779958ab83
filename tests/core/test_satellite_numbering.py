#!/usr/bin/env python3
"""Test suite for constellation constants and satellite identifiers"""

import unittest

from pyrinex.core.constants import (SYS_BDS, SYS_GLO, SYS_GPS, SYS_NONE, SYS_SBS,
                                    char2sys, sys2char, sys2timesys)
from pyrinex.core.satellite_numbering import SV


class TestConstants(unittest.TestCase):

    def test_char_mapping(self):
        self.assertEqual(sys2char(SYS_GLO), 'R')
        self.assertEqual(char2sys('c'), SYS_BDS)
        self.assertEqual(char2sys('X'), SYS_NONE)

    def test_time_systems(self):
        self.assertEqual(sys2timesys(SYS_GLO), 'GLO')
        self.assertEqual(sys2timesys(SYS_SBS), 'GPS')


class TestSV(unittest.TestCase):
    """Test RINEX satellite identifiers"""

    def test_parse(self):
        self.assertEqual(SV.parse('G07'), SV(SYS_GPS, 7))
        self.assertEqual(SV.parse('R 3'), SV(SYS_GLO, 3))
        self.assertEqual(SV.parse(' 5'), SV(SYS_GPS, 5))
        self.assertEqual(SV.parse(' 5', default_system=SYS_GLO), SV(SYS_GLO, 5))

    def test_parse_invalid(self):
        for text in ('X01', 'G', '   ', 'GAB', 'M01'):
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    SV.parse(text)

    def test_str(self):
        self.assertEqual(str(SV(SYS_GPS, 7)), 'G07')
        self.assertEqual(repr(SV(SYS_BDS, 19)), "SV('C19')")

    def test_ordering(self):
        sats = [SV.parse('R01'), SV.parse('G12'), SV.parse('G02')]
        self.assertEqual([str(s) for s in sorted(sats)], ['G02', 'G12', 'R01'])


if __name__ == '__main__':
    unittest.main()
