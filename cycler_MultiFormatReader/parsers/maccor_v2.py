# cycler_MultiFormatReader/parsers/maccor_v2.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
import re

from ..core.errors import MalformedRowError
from ..core.model import DataPoint, split_energy
from ..core.normalize import (Row, coerce_datetime, coerce_float, coerce_int,
                              coerce_string, find_column, row_values)
from .base import BaseDecoder
from .maccor_csv import state_letter_to_step

_SHEET_NAME = re.compile(r"^Data [0-9]+.*", re.IGNORECASE | re.DOTALL)


@dataclass
class _V2Row:
    cycle_id: int
    step_index: int
    date_time: datetime
    state: str
    current: float              # A
    voltage: float
    capacity: float             # Ah
    energy: float | None        # Wh, or mWh when configured
    temperature: float | None


class MaccorV2Decoder(BaseDecoder):
    """
    Maccor "Data" sheet exports with Cyc#/Step/State columns.

    Cycles are counted here, not taken from Cyc#: a step change after both a
    charge and a discharge step were seen opens the next cycle.
    """

    name = "maccor_v2"
    channel = 0

    # logical column -> accepted header names
    REQUIRED: dict[str, tuple[str, ...]] = {
        "cycle": ("Cyc#",),
        "step": ("Step",),
        "step_time": ("StepTime",),
        "voltage": ("Volts",),
        "current": ("Amps",),
        "capacity": ("Amp-hr",),
        "energy": ("Watt-hr",),
        "state": ("State",),
        "date_time": ("DPt Time",),
    }
    OPTIONAL: dict[str, tuple[str, ...]] = {
        "temperature": ("Temp 1",),
    }

    def __init__(self, logger=None, energy_in_mwh: bool = False):
        super().__init__(logger)
        self.energy_in_mwh = energy_in_mwh
        self._on_known_sheet = False
        self._cols: dict[str, int | None] | None = None
        self._cycle_index = 1
        self._start: datetime | None = None
        self._prev: _V2Row | None = None
        self._charge_seen = False
        self._discharge_seen = False

    def is_known_sheet(self, name: str) -> bool:
        return name.lower() == "data" or bool(_SHEET_NAME.match(name))

    def on_sheet_start(self, index: int, name: str) -> bool:
        self.log.info("Try parse sheet #%d with name %s", index + 1, name)
        self._on_known_sheet = self.is_known_sheet(name)
        self._cols = None
        return False

    def on_data_row(self, index: int, row: Row) -> bool:
        if not self._on_known_sheet:
            return False

        if self._cols is None:
            # header has to be on one of the first two rows
            if index > 1:
                self._on_known_sheet = False
                return False
            self._cols = self._parse_header(row)
            return self._cols is not None

        data = self._read_row(row)
        if data is None:
            raise MalformedRowError(index)
        self._process(data)
        return True

    def _parse_header(self, row: Row) -> dict[str, int | None] | None:
        self.log.info("Try parse header with values: %s", row_values(row))
        cols: dict[str, int | None] = {}
        for key, names in self.REQUIRED.items():
            cols[key] = find_column(row, *names)
            if cols[key] is None:
                return None
        for key, names in self.OPTIONAL.items():
            cols[key] = find_column(row, *names)
        return cols

    def _read_row(self, row: Row) -> _V2Row | None:
        c = self._cols
        cycle_id = coerce_int(row, c["cycle"])
        step_index = coerce_int(row, c["step"])
        capacity = coerce_float(row, c["capacity"])
        current = coerce_float(row, c["current"])
        voltage = coerce_float(row, c["voltage"])
        state = coerce_string(row, c["state"])
        date_time = coerce_datetime(row, c["date_time"])
        if None in (cycle_id, step_index, capacity, current, voltage, state, date_time):
            return None

        energy = None
        if c.get("energy") is not None:
            energy = coerce_float(row, c["energy"])
            if energy is None:
                return None

        return _V2Row(cycle_id=cycle_id, step_index=step_index, date_time=date_time,
                      state=state, current=current, voltage=voltage, capacity=capacity,
                      energy=energy, temperature=coerce_float(row, c.get("temperature")))

    def _process(self, row: _V2Row) -> None:
        step_changed = self._prev is not None and self._prev.step_index != row.step_index
        if step_changed and self._charge_seen and self._discharge_seen:
            self._cycle_index += 1
            self._charge_seen = False
            self._discharge_seen = False

        if self._start is None:
            self._start = row.date_time

        step = state_letter_to_step(row.state)
        if step_changed:
            if step.is_charge:
                self._charge_seen = True
            elif step.is_discharge:
                self._discharge_seen = True

        energy = row.energy
        if energy is not None and self.energy_in_mwh:
            energy = energy / 1000      # mWh -> Wh
        energy_wh, discharge_energy_wh = split_energy(step, energy)

        self.push(self.channel, DataPoint(
            cycle_index=self._cycle_index,
            cycle_step=step,
            time_seconds=(row.date_time - self._start).total_seconds(),
            current_mA=1000 * row.current,
            voltage_V=row.voltage,
            capacity_mAh=1000 * row.capacity,
            energy_Wh=energy_wh,
            discharge_energy_Wh=discharge_energy_wh,
            temperature=row.temperature,
        ))
        self._prev = row
