# cycler_MultiFormatReader/parsers/land.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
import re

from ..core.errors import MalformedRowError, UnknownStateError
from ..core.model import CycleStep, DataPoint, split_energy
from ..core.normalize import (CellType, Row, coerce_datetime, coerce_float, coerce_int,
                              coerce_string, coerce_timespan, find_column, row_values)
from .base import BaseDecoder

CURRENT_THRESHOLD = 1e-7
CAPACITY_THRESHOLD = 1e-7
# every Land time encoding is relative to this date
EXCEL_BASE_DATE = datetime(1899, 12, 31)

_STATES: dict[str, CycleStep] = {
    "r": CycleStep.REST,
    "d_cc": CycleStep.DISCHARGE,
    "d_rate": CycleStep.DISCHARGE,
    "c_cc": CycleStep.CHARGE_CC,
    "c_rate": CycleStep.CHARGE_CC,
    "c_cv": CycleStep.CHARGE_CV,
}

# [-][d.]hh:mm[:ss[.fffffff]] or a bare day count
_TIMESPAN_RE = re.compile(
    r"^(?P<sign>-)?(?:(?P<days>[0-9]+)\.)?(?P<h>[0-9]+):(?P<m>[0-9]+)(?::(?P<s>[0-9]+)(?:\.(?P<f>[0-9]{1,7}))?)?$"
)
_DAYS_RE = re.compile(r"^-?[0-9]+$")


class _State(Enum):
    REJECTED = "rejected"
    INITIAL = "initial"
    IN_STEP_HEADER = "in_step_header"
    IN_STEP = "in_step"


@dataclass
class _Header:
    index: int
    test_time: int
    time_in_seconds: bool
    voltage: int
    current: int
    capacity: int
    state: int | None


@dataclass
class _LandRow:
    index: int
    test_time: datetime
    voltage: float
    current: float          # mA
    capacity: float         # mAh
    state: str | None


def parse_timespan(text: str) -> timedelta | None:
    s = text.strip()
    if _DAYS_RE.match(s):
        return timedelta(days=int(s))
    m = _TIMESPAN_RE.match(s)
    if m is None:
        return None
    h, mi = int(m["h"]), int(m["m"])
    sec = int(m["s"] or 0)
    if h > 23 or mi > 59 or sec > 59:
        return None
    ticks = int((m["f"] or "").ljust(7, "0"))      # 100 ns units
    span = timedelta(days=int(m["days"] or 0), hours=h, minutes=mi, seconds=sec,
                     microseconds=ticks // 10)
    return -span if m["sign"] else span


def read_test_time(row: Row, index: int, in_seconds: bool) -> datetime | None:
    """
    Land stores the test clock four ways: serial seconds, a date-time, a
    time-span, or a "<days>-<time-span>" string.
    """
    if in_seconds:
        seconds = coerce_int(row, index)
        return None if seconds is None else EXCEL_BASE_DATE + timedelta(seconds=seconds)

    kind = row.type_at(index)
    if kind is CellType.DATETIME:
        return coerce_datetime(row, index)
    if kind is CellType.TIMESPAN:
        return EXCEL_BASE_DATE + coerce_timespan(row, index)
    if kind is CellType.STRING:
        value = coerce_string(row, index).strip()
        days, sep, rest = value.partition("-")
        if not sep or not days or not rest:
            return None
        if not _DAYS_RE.match(days):
            return None
        span = parse_timespan(rest)
        if span is None:
            return None
        try:
            return EXCEL_BASE_DATE + timedelta(days=int(days)) + span
        except OverflowError:
            return None
    return None


def state_to_step(state: str, row_index: int | None = None) -> CycleStep:
    try:
        return _STATES[state.strip().lower()]
    except KeyError:
        raise UnknownStateError(state, row_index) from None


def current_to_step(current: float) -> CycleStep:
    if abs(current) < CURRENT_THRESHOLD:
        return CycleStep.REST
    return CycleStep.CHARGE_CC if current > 0 else CycleStep.DISCHARGE


def is_step_header(row: Row) -> bool:
    return (find_column(row, "Index") == 0 and find_column(row, "Mode") == 1
            and find_column(row, "Period") == 2)


class LandDecoder(BaseDecoder):
    """
    LAND exports. Data blocks may be interleaved with step-definition blocks,
    each introduced by an "Index | Mode | Period" row and followed by a fresh
    data header.
    """

    name = "land"
    channel = 0

    def __init__(self, logger=None):
        super().__init__(logger)
        self._state = _State.REJECTED
        self._header: _Header | None = None
        self._cycle_index = 1
        self._start: datetime | None = None
        self._step = CycleStep.REST
        self._steps: set[CycleStep] = set()

    def on_sheet_start(self, index: int, name: str) -> bool:
        self.log.info("Try parse sheet #%d with name %s", index + 1, name)
        self._state = _State.INITIAL
        return False

    def on_data_row(self, index: int, row: Row) -> bool:
        if self._state is _State.REJECTED:
            return False

        if self._state is _State.INITIAL:
            if self._header is not None:
                # continuation sheet without its own header
                data = self._read_row(row)
                if data is not None:
                    self._state = _State.IN_STEP
                    self._process(index, data)
                    return True
                self._header = None

            if is_step_header(row):
                self._state = _State.IN_STEP_HEADER
                return True

            self._header = self._parse_header(row)
            if self._header is None:
                self._state = _State.REJECTED
                return False
            self._state = _State.IN_STEP
            return True

        if self._state is _State.IN_STEP_HEADER:
            self._header = self._parse_header(row)
            if self._header is not None:
                self._state = _State.IN_STEP
            return True

        # IN_STEP
        if is_step_header(row):
            self._header = None
            self._state = _State.IN_STEP_HEADER
            return True

        data = self._read_row(row)
        if data is None:
            raise MalformedRowError(index)
        self._process(index, data)
        return True

    def _parse_header(self, row: Row) -> _Header | None:
        self.log.info("Try parse header with values: %s", row_values(row))
        index = find_column(row, "Index", "记录序号")
        if index is None:
            return None

        in_seconds = False
        test_time = find_column(row, "TestTime", "测试时间")
        if test_time is None:
            test_time = find_column(row, "TestTime/Sec.")
            if test_time is None:
                return None
            in_seconds = True

        voltage = find_column(row, "Voltage/V", "电压/V")
        current = find_column(row, "Current/mA", "电流/mA")
        capacity = find_column(row, "Capacity/mAh", "容量/mAh")
        if voltage is None or current is None or capacity is None:
            return None

        return _Header(index=index, test_time=test_time, time_in_seconds=in_seconds,
                       voltage=voltage, current=current, capacity=capacity,
                       state=find_column(row, "State", "状态"))

    def _read_row(self, row: Row) -> _LandRow | None:
        h = self._header
        index = coerce_int(row, h.index)
        if index is None:
            return None
        test_time = read_test_time(row, h.test_time, h.time_in_seconds)
        if test_time is None:
            return None
        voltage = coerce_float(row, h.voltage)
        current = coerce_float(row, h.current)
        capacity = coerce_float(row, h.capacity)
        if voltage is None or current is None or capacity is None:
            return None

        state = None
        if h.state is not None:
            state = coerce_string(row, h.state)
            if state is None:
                return None

        return _LandRow(index=index, test_time=test_time, voltage=voltage,
                        current=current, capacity=capacity, state=state)

    def _process(self, row_index: int, row: _LandRow) -> None:
        if row.state is not None:
            step = state_to_step(row.state, row_index)
        else:
            step = current_to_step(row.current)

        if step != self._step:
            if step is not CycleStep.REST:
                # a step seen again this cycle with capacity back at zero opens a new cycle
                if step in self._steps and abs(row.capacity) <= CAPACITY_THRESHOLD:
                    self._cycle_index += 1
                    self._steps.clear()
                    self.log.debug("cycle %d starts at row #%d", self._cycle_index, row_index)
                self._steps.add(step)
            self._step = step

        if self._start is None:
            self._start = row.test_time

        energy_wh, discharge_energy_wh = split_energy(step, row.capacity * row.voltage / 1000)
        self.push(self.channel, DataPoint(
            cycle_index=self._cycle_index,
            cycle_step=step,
            time_seconds=(row.test_time - self._start).total_seconds(),
            current_mA=row.current,
            voltage_V=row.voltage,
            capacity_mAh=row.capacity,
            energy_Wh=energy_wh,
            discharge_energy_Wh=discharge_energy_wh,
        ))
