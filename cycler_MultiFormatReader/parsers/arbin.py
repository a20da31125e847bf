# cycler_MultiFormatReader/parsers/arbin.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
import re

from ..core.errors import MalformedRowError
from ..core.model import CycleStep, DataPoint, split_energy
from ..core.normalize import (Row, coerce_datetime, coerce_float, coerce_int,
                              find_column, from_ole_date, row_values)
from .base import BaseDecoder

_SHEET_NAME = re.compile(r"^channel_[0-9]+.*", re.IGNORECASE | re.DOTALL)
_SHEET_NAME_STANFORD = re.compile(r"^channel_[a-z]+.*", re.IGNORECASE | re.DOTALL)

CURRENT_CHARGE_THRESHOLD = 1e-20
CURRENT_DISCHARGE_THRESHOLD = -1e-20


@dataclass
class _Header:
    cycle: int
    step: int
    date_time: int
    current: int
    voltage: int
    charge_capacity: int
    discharge_capacity: int
    charge_energy: int
    discharge_energy: int
    temperature: int | None


@dataclass
class _ArbinRow:
    cycle_index: int
    step_index: int
    date_time: datetime
    current: float              # A
    voltage: float
    charge_capacity: float | None
    discharge_capacity: float | None
    charge_energy: float | None
    discharge_energy: float | None
    temperature: float | None


def channel_from_sheet_name(name: str) -> int | None:
    """
    "Channel_10_1" -> 10, "Channel_1-007" -> 7.
    With a hyphen the channel number is the third part, otherwise the second.
    """
    parts = re.split(r"[_-]", name)
    if len(parts) != 3 or parts[0].lower() != "channel":
        return None
    part = parts[2] if "-" in name else parts[1]
    return int(part) if re.fullmatch(r"[0-9]+", part) else None


def charge_type(curr: _ArbinRow, nxt: _ArbinRow) -> CycleStep:
    """
    CV when the current moves relatively more than the voltage between two rows.
    A zero reference value never compares as greater, so it yields CC.
    """
    dc = _relative_delta(curr.current, nxt.current)
    dv = _relative_delta(curr.voltage, nxt.voltage)
    if dc is None or dv is None:
        return CycleStep.CHARGE_CC
    return CycleStep.CHARGE_CV if dc > dv else CycleStep.CHARGE_CC


def _relative_delta(a: float, b: float) -> float | None:
    if a == 0:
        return None
    return abs(a - b) / a


class ArbinDecoder(BaseDecoder):
    """Arbin exports: one sheet per channel, step type inferred from the current sign."""

    name = "arbin"

    def __init__(self, logger=None):
        super().__init__(logger)
        self._on_known_sheet = False
        self._channel = 0
        self._header: _Header | None = None
        self._pending: _ArbinRow | None = None
        self._prev: _ArbinRow | None = None
        self._last_step_discharge = False
        self._step: CycleStep | None = None
        self._start: datetime | None = None

    # ----- hooks -----
    def on_sheet_start(self, index: int, name: str) -> bool:
        self.log.info("Try parse sheet #%d with name %s", index + 1, name)
        self._on_known_sheet = bool(_SHEET_NAME.match(name) or _SHEET_NAME_STANFORD.match(name))
        if not self._on_known_sheet:
            return False

        channel = channel_from_sheet_name(name)
        if channel is not None and (self._channel == 0 or channel != self._channel):
            # new channel: the old one's lookahead row belongs to the old channel
            self._flush_pending()
            self._channel = channel
            self._prev = None
            self._start = None
            self._step = None
            self._last_step_discharge = False
            self.log.debug("switched to channel %d", channel)
        return False

    def on_data_row(self, index: int, row: Row) -> bool:
        if not self._on_known_sheet:
            return False

        if index == 0:
            self._header = self._parse_header(row)
            if self._header is not None:
                return True
            self._on_known_sheet = False
            return False

        data = self._read_row(row)
        if data is None:
            raise MalformedRowError(index)
        self._process(data)
        return True

    def on_document_end(self) -> None:
        self._flush_pending()

    # ----- header / rows -----
    def _parse_header(self, row: Row) -> _Header | None:
        self.log.info("Try parse header with values: %s", row_values(row))
        cols = {
            "cycle": find_column(row, "Cycle_Index"),
            "step": find_column(row, "Step_Index"),
            "date_time": find_column(row, "Date_Time", "DateTime"),
            "current": find_column(row, "Current(A)", "Current"),
            "voltage": find_column(row, "Voltage(V)", "Voltage"),
            "charge_capacity": find_column(row, "Charge_Capacity(Ah)", "Charge_Capacity"),
            "discharge_capacity": find_column(row, "Discharge_Capacity(Ah)", "Discharge_Capacity"),
            "charge_energy": find_column(row, "Charge_Energy(Wh)", "Charge_Energy"),
            "discharge_energy": find_column(row, "Discharge_Energy(Wh)", "Discharge_Energy"),
        }
        if any(v is None for v in cols.values()):
            return None
        return _Header(temperature=find_column(row, "Aux_Temperature_1"), **cols)

    def _read_row(self, row: Row) -> _ArbinRow | None:
        h = self._header
        cycle = coerce_int(row, h.cycle)
        step = coerce_int(row, h.step)
        if cycle is None or step is None:
            return None

        date_time = coerce_datetime(row, h.date_time)
        if date_time is None:
            serial = coerce_float(row, h.date_time)    # date may be stored as an OLE serial
            if serial is None:
                return None
            date_time = from_ole_date(serial)
            if date_time is None:
                return None

        current = coerce_float(row, h.current)
        voltage = coerce_float(row, h.voltage)
        if current is None or voltage is None:
            return None

        return _ArbinRow(
            cycle_index=cycle,
            step_index=step,
            date_time=date_time,
            current=current,
            voltage=voltage,
            charge_capacity=coerce_float(row, h.charge_capacity),
            discharge_capacity=coerce_float(row, h.discharge_capacity),
            charge_energy=coerce_float(row, h.charge_energy),
            discharge_energy=coerce_float(row, h.discharge_energy),
            temperature=coerce_float(row, h.temperature),
        )

    # ----- classification -----
    def _process(self, row: _ArbinRow) -> None:
        if self._pending is not None:
            if row.step_index != self._pending.step_index:
                self._step = CycleStep.CHARGE_CV
            else:
                self._step = charge_type(self._pending, row)
            self._last_step_discharge = False
            self._emit(self._pending)
            self._prev = self._pending
            self._pending = None

        prev = self._prev
        if prev is None or row.step_index != prev.step_index:
            if row.current > CURRENT_CHARGE_THRESHOLD:
                # charge: CC or CV is only known once the next row arrives
                self._step = None
                self._pending = row
                self._last_step_discharge = False
                return

            if (prev is not None and self._last_step_discharge
                    and row.current <= CURRENT_DISCHARGE_THRESHOLD):
                # transition between cycles, may carry zero discharge capacity
                self._step = CycleStep.REST
                self._last_step_discharge = False
            elif row.current <= CURRENT_DISCHARGE_THRESHOLD:
                self._step = CycleStep.DISCHARGE
                self._last_step_discharge = True
            else:
                self._step = CycleStep.REST
                self._last_step_discharge = False

        self._emit(row)
        self._prev = row

    def _flush_pending(self) -> None:
        if self._pending is None:
            return
        # no next row to compare against
        self._step = CycleStep.CHARGE_CC
        self._emit(self._pending)
        self._prev = self._pending
        self._pending = None

    def _emit(self, row: _ArbinRow) -> None:
        if self._start is None:
            self._start = row.date_time

        step = self._step
        if step.is_charge:
            capacity, energy = row.charge_capacity, row.charge_energy
        elif step.is_discharge:
            capacity, energy = row.discharge_capacity, row.discharge_energy
        else:
            capacity, energy = None, None
        energy_wh, discharge_energy_wh = split_energy(step, energy)

        self.push(self._channel, DataPoint(
            cycle_index=row.cycle_index,
            cycle_step=step,
            time_seconds=(row.date_time - self._start).total_seconds(),
            current_mA=1000 * row.current,
            voltage_V=row.voltage,
            capacity_mAh=None if capacity is None else 1000 * capacity,
            energy_Wh=energy_wh,
            discharge_energy_Wh=discharge_energy_wh,
            temperature=row.temperature,
        ))
