from datetime import datetime, time, timedelta
import math
import unittest

from cycler_MultiFormatReader.core.normalize import (CellType, Row, cell_type_of, coerce_datetime,
                                                     coerce_float, coerce_int, coerce_string,
                                                     coerce_timespan, find_column, from_ole_date,
                                                     is_empty, row_values)


class CellTypeTests(unittest.TestCase):
    def test_native_types(self):
        self.assertIs(CellType.STRING, cell_type_of("x"))
        self.assertIs(CellType.INT, cell_type_of(3))
        self.assertIs(CellType.FLOAT, cell_type_of(3.5))
        self.assertIs(CellType.DATETIME, cell_type_of(datetime(2024, 1, 1)))
        self.assertIs(CellType.TIMESPAN, cell_type_of(timedelta(seconds=5)))
        self.assertIs(CellType.TIMESPAN, cell_type_of(time(1, 2, 3)))

    def test_missing_values_are_empty(self):
        self.assertIs(CellType.NONE, cell_type_of(None))
        self.assertIs(CellType.NONE, cell_type_of(float("nan")))

    def test_bool_is_not_a_number(self):
        self.assertIs(CellType.OTHER, cell_type_of(True))
        self.assertIsNone(coerce_int(Row([True]), 0))
        self.assertIsNone(coerce_float(Row([False]), 0))

    def test_out_of_range_index_is_empty(self):
        row = Row([1, 2])
        self.assertIs(CellType.NONE, row.type_at(5))
        self.assertIs(CellType.NONE, row.type_at(None))
        self.assertIsNone(coerce_float(row, 5))
        self.assertIsNone(coerce_string(row, None))


class FindColumnTests(unittest.TestCase):
    def test_whitespace_and_case_insensitive(self):
        row = Row(["Index", "  Voltage(V) ", "current(a)"])
        self.assertEqual(1, find_column(row, "Voltage(V)"))
        self.assertEqual(2, find_column(row, "Current(A)"))

    def test_first_alias_match_and_string_cells_only(self):
        row = Row([5, "DateTime", "Date_Time"])
        self.assertEqual(1, find_column(row, "Date_Time", "DateTime"))
        self.assertIsNone(find_column(Row([1, 2.0]), "1"))

    def test_empty_row(self):
        self.assertTrue(is_empty(Row([None, float("nan"), None])))
        self.assertFalse(is_empty(Row([None, "x"])))
        self.assertTrue(is_empty(Row([None, "x"]), 0))


class CoercionTests(unittest.TestCase):
    def test_int(self):
        row = Row([" 12 ", "1.5", 2.7, "99999999999", 7, "abc"])
        self.assertEqual(12, coerce_int(row, 0))
        self.assertIsNone(coerce_int(row, 1))
        self.assertEqual(2, coerce_int(row, 2))
        self.assertIsNone(coerce_int(row, 3))
        self.assertEqual(7, coerce_int(row, 4))
        self.assertIsNone(coerce_int(row, 5))

    def test_float(self):
        row = Row(["1.0", "1e3", "-.5", 4, "abc", "NaN", "-Infinity"])
        self.assertEqual(1.0, coerce_float(row, 0))
        self.assertEqual(1000.0, coerce_float(row, 1))
        self.assertEqual(-0.5, coerce_float(row, 2))
        self.assertEqual(4.0, coerce_float(row, 3))
        self.assertIsNone(coerce_float(row, 4))
        self.assertTrue(math.isnan(coerce_float(row, 5)))
        self.assertEqual(-math.inf, coerce_float(row, 6))

    def test_datetime(self):
        row = Row([datetime(2024, 1, 1, 10), "2024-01-02 03:04:05", "not a date", 5])
        self.assertEqual(datetime(2024, 1, 1, 10), coerce_datetime(row, 0))
        self.assertEqual(datetime(2024, 1, 2, 3, 4, 5), coerce_datetime(row, 1))
        self.assertIsNone(coerce_datetime(row, 2))
        self.assertIsNone(coerce_datetime(row, 3))

    def test_timespan(self):
        row = Row([timedelta(minutes=3), time(0, 1, 30), "00:01:30"])
        self.assertEqual(timedelta(minutes=3), coerce_timespan(row, 0))
        self.assertEqual(timedelta(seconds=90), coerce_timespan(row, 1))
        self.assertIsNone(coerce_timespan(row, 2))

    def test_ole_date(self):
        self.assertEqual(datetime(1899, 12, 31, 12), from_ole_date(1.5))
        self.assertIsNone(from_ole_date(1e12))

    def test_only_ascii_digits_are_numbers(self):
        row = Row(["\uff11\uff12", "\uff11.\uff15", "\u0661\u0662"])
        self.assertIsNone(coerce_int(row, 0))
        self.assertIsNone(coerce_float(row, 1))
        self.assertIsNone(coerce_float(row, 2))

    def test_row_values_for_logging(self):
        self.assertEqual("a,,3", row_values(Row(["a", None, 3])))
