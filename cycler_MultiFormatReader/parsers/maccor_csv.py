# cycler_MultiFormatReader/parsers/maccor_csv.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime

from ..core.errors import MalformedRowError
from ..core.model import CycleStep, DataPoint, split_energy
from ..core.normalize import (Row, coerce_datetime, coerce_float, coerce_int,
                              coerce_string, find_column, row_values)
from .base import BaseDecoder

_STATES: dict[str, CycleStep] = {
    "r": CycleStep.REST,
    "d": CycleStep.DISCHARGE,
    "c": CycleStep.CHARGE_CC,
}


def state_letter_to_step(state: str) -> CycleStep:
    """Maccor R/D/C state letters; anything unrecognized counts as rest."""
    return _STATES.get(state.strip().lower(), CycleStep.REST)


@dataclass
class _Header:
    cycle: int        # "Cyc#": incremented by the AdvCyc step, 0-based
    step: int
    current: int      # A
    voltage: int
    capacity: int     # Ah
    energy: int       # Wh
    date_time: int    # "DPt Time": when the point was written
    state: int


class MaccorCsvDecoder(BaseDecoder):
    """Maccor CSV exports: a single implicit channel, explicit R/D/C state letters."""

    name = "maccor_csv"
    channel = 0

    def __init__(self, logger=None):
        super().__init__(logger)
        self._header: _Header | None = None
        self._start: datetime | None = None

    def on_data_row(self, index: int, row: Row) -> bool:
        if index == 0:
            self._header = self._parse_header(row)
            return self._header is not None

        # the vendor sometimes writes one metadata line before the header
        if index == 1 and self._header is None:
            self._header = self._parse_header(row)
            return self._header is not None

        if self._header is None:
            return False

        self._process(index, row)
        return True

    def _parse_header(self, row: Row) -> _Header | None:
        self.log.info("Try parse header with values: %s", row_values(row))
        cols = {
            "cycle": find_column(row, "Cyc#"),
            "step": find_column(row, "Step"),
            "current": find_column(row, "Amps"),
            "voltage": find_column(row, "Volts"),
            "capacity": find_column(row, "Amp-hr"),
            "energy": find_column(row, "Watt-hr"),
            "date_time": find_column(row, "DPt Time"),
            "state": find_column(row, "State"),
        }
        if any(v is None for v in cols.values()):
            return None
        return _Header(**cols)

    def _process(self, index: int, row: Row) -> None:
        h = self._header
        cycle = coerce_int(row, h.cycle)
        step_index = coerce_int(row, h.step)
        current = coerce_float(row, h.current)
        voltage = coerce_float(row, h.voltage)
        capacity = coerce_float(row, h.capacity)
        energy = coerce_float(row, h.energy)
        state = coerce_string(row, h.state)
        date_time = coerce_datetime(row, h.date_time)
        if (cycle is None or step_index is None or current is None or voltage is None
                or capacity is None or energy is None or not state or date_time is None):
            raise MalformedRowError(index)

        if self._start is None:
            self._start = date_time

        step = state_letter_to_step(state)
        energy_wh, discharge_energy_wh = split_energy(step, energy)
        self.push(self.channel, DataPoint(
            cycle_index=cycle + 1,
            cycle_step=step,
            time_seconds=(date_time - self._start).total_seconds(),
            current_mA=current * 1000,      # A -> mA
            voltage_V=voltage,
            capacity_mAh=capacity * 1000,   # Ah -> mAh
            energy_Wh=energy_wh,
            discharge_energy_Wh=discharge_energy_wh,
        ))
