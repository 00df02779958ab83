#!/usr/bin/env python3
"""Test suite for the epoch time-series container"""

import unittest

import numpy as np
import pandas as pd
import pytest

from pyrinex.core.constants import SYS_GLO, SYS_GPS
from pyrinex.core.data_structures import (ClockPayload, ClockRecord, EpochFlag, EpochKey,
                                          FileType, IonexPayload, MergePolicy, MeteoPayload,
                                          ObservationPayload, ObservationValue)
from pyrinex.core.errors import MergeConflict, NonMonotonicEpoch
from pyrinex.core.satellite_numbering import SV
from pyrinex.core.time import GNSSTime
from pyrinex.core.timeseries import (TimeSeries, by_constellation, by_observable,
                                     by_satellite)

T0 = GNSSTime.from_calendar(2024, 1, 1)
G01 = SV(SYS_GPS, 1)
G02 = SV(SYS_GPS, 2)
R05 = SV(SYS_GLO, 5)


def obs_payload(values, clock=None):
    """Payload from {sv: {code: value}}"""
    return ObservationPayload({sv: {code: ObservationValue(v) for code, v in codes.items()}
                               for sv, codes in values.items()}, clock)


def obs_series(n, start=0, step=30.0):
    series = TimeSeries(FileType.OBSERVATION)
    for i in range(start, start + n):
        series.insert(T0 + i * step, obs_payload({
            G01: {'C1C': 20000000.0 + i, 'L1C': 100000000.0 + i},
            R05: {'C1C': 21000000.0 + i},
        }))
    return series


class TestInsert(unittest.TestCase):

    def test_append_only_rejects_earlier_epoch(self):
        series = obs_series(2)
        with self.assertRaises(NonMonotonicEpoch):
            series.insert(T0 - 30, obs_payload({G01: {'C1C': 1.0}}))
        self.assertEqual(len(series), 2)

    def test_unordered_mode_sorts(self):
        series = TimeSeries(FileType.OBSERVATION, append_only=False)
        series.insert(T0 + 60, obs_payload({G01: {'C1C': 3.0}}))
        series.insert(T0, obs_payload({G01: {'C1C': 1.0}}))
        series.insert(T0 + 30, obs_payload({G01: {'C1C': 2.0}}))
        self.assertEqual([k.time for k in series.epochs()], [T0, T0 + 30, T0 + 60])

    def test_equal_key_folds_payload(self):
        series = TimeSeries(FileType.OBSERVATION)
        series.insert(T0, obs_payload({G01: {'C1C': 1.0}}))
        series.insert(T0, obs_payload({G02: {'C1C': 2.0}}))
        self.assertEqual(len(series), 1)
        self.assertEqual(set(series[T0].data), {G01, G02})

    def test_flags_make_distinct_keys(self):
        series = TimeSeries(FileType.OBSERVATION)
        series.insert(EpochKey(T0), obs_payload({G01: {'C1C': 1.0}}))
        series.insert(EpochKey(T0, EpochFlag.EXTERNAL_EVENT), ObservationPayload(events=['x']))
        self.assertEqual(len(series), 2)
        self.assertIn(EpochKey(T0, EpochFlag.EXTERNAL_EVENT), series)
        self.assertEqual(series.get(T0).get(G01, 'C1C').value, 1.0)

    def test_lookup(self):
        series = obs_series(3)
        self.assertIn(T0 + 30, series)
        self.assertIsNone(series.get(T0 + 31))
        self.assertEqual(series.first[0].time, T0)
        self.assertEqual(series.last[0].time, T0 + 60)
        self.assertIsNone(TimeSeries(FileType.METEO).first)


class TestRange(unittest.TestCase):

    def test_range_is_inclusive_and_restartable(self):
        series = obs_series(5)
        view = series.range(T0 + 30, T0 + 90)
        times = [k.time for k, _ in view]
        self.assertEqual(times, [T0 + 30, T0 + 60, T0 + 90])
        self.assertEqual([k.time for k, _ in view], times)
        self.assertEqual(len(view), 3)

    def test_unbounded_range_is_chronological(self):
        series = obs_series(4)
        times = [k.time for k, _ in series.range()]
        self.assertEqual(times, sorted(times))
        self.assertEqual(len(times), 4)

    def test_empty_ranges(self):
        series = obs_series(3)
        self.assertEqual(list(series.range(T0 + 60, T0)), [])
        self.assertEqual(list(series.range(T0 + 1000, T0 + 2000)), [])

    def test_range_sees_later_inserts(self):
        series = obs_series(2)
        view = series.range()
        series.insert(T0 + 60, obs_payload({G01: {'C1C': 0.0}}))
        self.assertEqual(len(view), 3)


class TestMerge(unittest.TestCase):

    def test_adjacent_windows_fail_on_conflict(self):
        a = obs_series(3)
        b = obs_series(3, start=3)
        merged = a.merge(b, MergePolicy.FAIL_ON_CONFLICT)
        self.assertEqual(len(merged), 6)
        times = [k.time for k in merged.epochs()]
        self.assertEqual(times, [T0 + 30 * i for i in range(6)])

    def test_merge_idempotent(self):
        a = obs_series(4)
        self.assertEqual(a.merge(a, MergePolicy.LAST_WINS), a)
        self.assertEqual(a.merge(a, 'fail-on-conflict'), a)

    def test_conflict_policies(self):
        a = TimeSeries.from_items(FileType.OBSERVATION, [(T0, obs_payload({G01: {'C1C': 1.0}}))])
        b = TimeSeries.from_items(FileType.OBSERVATION, [(T0, obs_payload({G01: {'C1C': 2.0}}))])
        with self.assertRaises(MergeConflict):
            a.merge(b, MergePolicy.FAIL_ON_CONFLICT)
        self.assertEqual(a.merge(b, MergePolicy.LAST_WINS)[T0].get(G01, 'C1C').value, 2.0)
        self.assertEqual(a.merge(b, MergePolicy.FIRST_WINS)[T0].get(G01, 'C1C').value, 1.0)

    def test_overlap_unions_satellites(self):
        a = TimeSeries.from_items(FileType.OBSERVATION, [(T0, obs_payload({G01: {'C1C': 1.0}}))])
        b = TimeSeries.from_items(FileType.OBSERVATION, [(T0, obs_payload({G02: {'C1C': 2.0}}))])
        merged = a.merge(b)
        self.assertEqual(sorted(merged[T0].data), [G01, G02])

    def test_merge_leaves_inputs_untouched(self):
        a = obs_series(2)
        b = obs_series(2, start=1)
        before = obs_series(2)
        a.merge(b, MergePolicy.LAST_WINS)
        self.assertEqual(a, before)

    def test_file_type_mismatch(self):
        with self.assertRaises(ValueError):
            obs_series(1).merge(TimeSeries(FileType.METEO))


class TestFilterDecimate(unittest.TestCase):

    def test_filter_by_constellation(self):
        gps = obs_series(3).filter(by_constellation('G'))
        for _, payload in gps:
            self.assertEqual(list(payload.data), [G01])

    def test_filter_drops_empty_epochs(self):
        series = TimeSeries(FileType.OBSERVATION)
        series.insert(T0, obs_payload({G01: {'C1C': 1.0}}))
        series.insert(T0 + 30, obs_payload({R05: {'C1C': 1.0}}))
        self.assertEqual(len(series.filter(by_satellite('R05'))), 1)

    def test_filter_by_observable(self):
        series = obs_series(2).filter(by_observable('L1C'))
        self.assertEqual(list(series[T0].keys()), [(G01, 'L1C')])

    def test_filter_keeps_event_epochs(self):
        series = TimeSeries(FileType.OBSERVATION)
        series.insert(EpochKey(T0, EpochFlag.NEW_SITE_OCCUPATION),
                      ObservationPayload(events=['MARKER NAME']))
        self.assertEqual(len(series.filter(by_constellation(SYS_GLO))), 1)

    def test_decimate(self):
        series = obs_series(10)
        kept = series.decimate(60)
        self.assertEqual([k.time for k in kept.epochs()], [T0 + 60 * i for i in range(5)])
        self.assertEqual(len(series), 10)

    def test_decimate_invalid_interval(self):
        with self.assertRaises(ValueError):
            obs_series(2).decimate(0)


class TestDataFrame:
    """Tabular export"""

    def test_observation_frame(self):
        df = obs_series(2).to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ['time', 'flag', 'sv', 'code', 'value', 'lli', 'ssi']
        assert len(df) == 6
        assert set(df['sv']) == {'G01', 'R05'}

    def test_meteo_frame(self):
        series = TimeSeries.from_items(FileType.METEO, [(T0, MeteoPayload({'PR': 1013.2, 'TD': 21.5}))])
        df = series.to_dataframe()
        assert df['value'].tolist() == [1013.2, 21.5]

    def test_clock_frame(self):
        payload = ClockPayload({('AS', 'G01'): ClockRecord(1.5e-4, 2.0e-11)})
        df = TimeSeries.from_items(FileType.CLOCK, [(T0, payload)]).to_dataframe()
        assert df.loc[0, 'bias'] == 1.5e-4
        assert df.loc[0, 'name'] == 'G01'

    def test_ionex_has_no_frame(self):
        series = TimeSeries.from_items(FileType.IONEX, [(T0, IonexPayload(tec=np.zeros((1, 2, 2))))])
        with pytest.raises(TypeError):
            series.to_dataframe()


if __name__ == '__main__':
    unittest.main()
