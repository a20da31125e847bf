# cycler_MultiFormatReader/core/normalize.py
"""
Typed, fault-tolerant cell access over one tabular row.

Every coercion is total: a type mismatch or a failed parse gives ``None``,
never an exception. Decoders decide what a missing value means (decline the
sheet while sniffing, or fail the parse once they own the document).
"""
from __future__ import annotations
from datetime import date, datetime, time, timedelta
from enum import Enum
import math
import re
from typing import Any, Sequence

import numpy as np
import pandas as pd


class CellType(Enum):
    NONE = "none"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    DATETIME = "datetime"
    TIMESPAN = "timespan"
    OTHER = "other"      # native type none of the coercions accept (e.g. bool)


_INT_RE = re.compile(r"^[+-]?[0-9]+$")
_FLOAT_RE = re.compile(r"^[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$")
_FLOAT_SPECIAL = {"nan": math.nan, "infinity": math.inf, "+infinity": math.inf, "-infinity": -math.inf}
_INT32_MIN, _INT32_MAX = -2**31, 2**31 - 1

# OLE automation dates count days from 1899-12-30
OLE_EPOCH = datetime(1899, 12, 30)


def cell_type_of(value: Any) -> CellType:
    if value is None or value is pd.NaT:
        return CellType.NONE
    if isinstance(value, (bool, np.bool_)):
        return CellType.OTHER
    if isinstance(value, str):
        return CellType.STRING
    if isinstance(value, (int, np.integer)):
        return CellType.INT
    if isinstance(value, (float, np.floating)):
        return CellType.NONE if math.isnan(value) else CellType.FLOAT
    if isinstance(value, (datetime, date, np.datetime64)):
        return CellType.DATETIME
    if isinstance(value, (timedelta, time, np.timedelta64)):
        return CellType.TIMESPAN
    return CellType.OTHER


class Row:
    """One tabular row: positional cells with a native type per cell."""

    __slots__ = ("values", "types")

    def __init__(self, values: Sequence[Any]):
        self.values = list(values)
        self.types = [cell_type_of(v) for v in self.values]

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return f"Row({self.values!r})"

    def type_at(self, index: int | None) -> CellType:
        if index is None or index < 0 or index >= len(self.values):
            return CellType.NONE
        return self.types[index]


def find_column(row: Row, *names: str) -> int | None:
    """Index of the first string cell equal to any of ``names`` (trimmed, case-insensitive)."""
    wanted = {n.strip().casefold() for n in names}
    for i, (v, t) in enumerate(zip(row.values, row.types)):
        if t is CellType.STRING and v.strip().casefold() in wanted:
            return i
    return None


def is_empty(row: Row, index: int | None = None) -> bool:
    if index is None:
        return all(t is CellType.NONE for t in row.types)
    return row.type_at(index) is CellType.NONE


def coerce_int(row: Row, index: int | None) -> int | None:
    t = row.type_at(index)
    if t is CellType.INT:
        return int(row.values[index])
    if t is CellType.FLOAT:
        v = float(row.values[index])
        if not math.isfinite(v):
            return None
        return int(v)
    if t is CellType.STRING:
        s = row.values[index].strip()
        if not _INT_RE.match(s):
            return None
        v = int(s)
        return v if _INT32_MIN <= v <= _INT32_MAX else None
    return None


def coerce_float(row: Row, index: int | None) -> float | None:
    t = row.type_at(index)
    if t in (CellType.FLOAT, CellType.INT):
        return float(row.values[index])
    if t is CellType.STRING:
        s = row.values[index].strip()
        if _FLOAT_RE.match(s):
            return float(s)
        return _FLOAT_SPECIAL.get(s.lower())
    return None


def coerce_datetime(row: Row, index: int | None) -> datetime | None:
    t = row.type_at(index)
    if t is CellType.DATETIME:
        return _as_datetime(row.values[index])
    if t is CellType.STRING:
        s = row.values[index].strip()
        if not s:
            return None
        try:
            ts = pd.to_datetime(s, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
        if ts is pd.NaT or pd.isna(ts):
            return None
        return _as_datetime(ts)
    return None


def coerce_timespan(row: Row, index: int | None) -> timedelta | None:
    if row.type_at(index) is not CellType.TIMESPAN:
        return None
    v = row.values[index]
    if isinstance(v, time):
        return timedelta(hours=v.hour, minutes=v.minute, seconds=v.second, microseconds=v.microsecond)
    if isinstance(v, np.timedelta64):
        return pd.Timedelta(v).to_pytimedelta()
    if isinstance(v, pd.Timedelta):
        return v.to_pytimedelta()
    return v


def coerce_string(row: Row, index: int | None) -> str | None:
    if row.type_at(index) is CellType.STRING:
        return row.values[index]
    return None


def from_ole_date(serial: float) -> datetime | None:
    """Excel/OLE serial day count -> datetime (no value when out of range)."""
    try:
        return OLE_EPOCH + timedelta(days=serial)
    except (OverflowError, ValueError):
        return None


def row_values(row: Row) -> str:
    return ",".join("" if t is CellType.NONE else str(v) for v, t in zip(row.values, row.types))


def _as_datetime(v) -> datetime:
    if isinstance(v, np.datetime64):
        v = pd.Timestamp(v)
    if isinstance(v, pd.Timestamp):
        if v.tzinfo is not None:
            v = v.tz_localize(None)
        return v.to_pydatetime()
    if isinstance(v, datetime):
        return v.replace(tzinfo=None) if v.tzinfo is not None else v
    return datetime(v.year, v.month, v.day)
