# cycler_MultiFormatReader/parsers/maccor.py
from __future__ import annotations
import re

from ..core.errors import MalformedRowError
from ..core.model import CycleStep, DataPoint, split_energy
from ..core.normalize import Row, coerce_float, find_column, row_values
from .base import BaseDecoder

_SHEET_NAME = re.compile(r"^Cycle ([0-9]+) (CHG|DIS)$", re.IGNORECASE | re.DOTALL)


def parse_sheet_name(name: str) -> tuple[int, CycleStep] | None:
    """'Cycle 3 CHG' -> (3, CHARGE_CC); 'Cycle 3 DIS' -> (3, DISCHARGE)."""
    m = _SHEET_NAME.match(name)
    if m is None:
        return None
    step = CycleStep.CHARGE_CC if m.group(2).upper() == "CHG" else CycleStep.DISCHARGE
    return int(m.group(1)), step


class MaccorDecoder(BaseDecoder):
    """
    Maccor workbooks with one sheet per half cycle ("Cycle <n> CHG|DIS").

    Rows only carry the time within the step (minutes), so the timeline is
    rebuilt: every sheet starts at the latest time seen so far. Capacity is
    integrated from the current as the rows go by.
    """

    name = "maccor"

    def __init__(self, logger=None):
        super().__init__(logger)
        self._on_known_sheet = False
        self._step: CycleStep | None = None
        self._sheet_cycle = 0
        self._prev_sheet_cycle: int | None = None

        self._step_time_col: int | None = None
        self._voltage_col: int | None = None
        self._current_col: int | None = None

        self._cycle_index = 1
        self._first = True
        self._global_time = 0.0
        self._sheet_start_time = 0.0
        self._capacity = 0.0            # Ah
        self._prev_time: float | None = None

    def on_sheet_start(self, index: int, name: str) -> bool:
        self.log.info("Try parse sheet #%d with name %s", index + 1, name)
        parsed = parse_sheet_name(name)
        if parsed is None:
            self._step = None
            self._on_known_sheet = False
        else:
            self._sheet_cycle, self._step = parsed
            self._on_known_sheet = True
        return False

    def on_sheet_end(self, index: int, name: str) -> bool:
        if self._on_known_sheet:
            self._prev_sheet_cycle = self._sheet_cycle
        return False

    def on_data_row(self, index: int, row: Row) -> bool:
        if not self._on_known_sheet:
            return False

        if index == 0:
            if self._parse_header(row):
                # sheet numbers need not be contiguous, only a change counts
                if self._prev_sheet_cycle is not None and self._sheet_cycle != self._prev_sheet_cycle:
                    self._cycle_index += 1
                    self.log.debug("cycle %d starts at sheet cycle %d", self._cycle_index, self._sheet_cycle)
                self._sheet_start_time = self._global_time
                self._capacity = 0.0
                self._prev_time = None
                return True
            self._on_known_sheet = False
            return False

        step_time = coerce_float(row, self._step_time_col)
        current = coerce_float(row, self._current_col)
        voltage = coerce_float(row, self._voltage_col)
        if step_time is None or current is None or voltage is None:
            raise MalformedRowError(index)

        self._process(step_time, current, voltage)
        return True

    def _parse_header(self, row: Row) -> bool:
        self.log.info("Try parse header with values: %s", row_values(row))
        self._step_time_col = find_column(row, "StepTime")
        self._voltage_col = find_column(row, "Voltage")
        self._current_col = find_column(row, "Current")
        return None not in (self._step_time_col, self._voltage_col, self._current_col)

    def _process(self, step_time: float, current: float, voltage: float) -> None:
        if self._first:
            # absolute time starts at the first sheet boundary
            self._sheet_start_time = self._global_time = -step_time * 60.0
            self._first = False

        time = self._sheet_start_time + step_time * 60.0
        if time > self._global_time:
            self._global_time = time

        if self._prev_time is not None:
            self._capacity += (time - self._prev_time) * current / 3600
        self._prev_time = time

        energy_wh, discharge_energy_wh = split_energy(self._step, self._capacity * voltage)
        # TODO: the channel key is the current-column index; confirm with the lab
        # whether these workbooks should map to a real channel id
        self.push(self._current_col, DataPoint(
            cycle_index=self._cycle_index,
            cycle_step=self._step,
            time_seconds=time,
            current_mA=1000.0 * current,
            voltage_V=voltage,
            capacity_mAh=1000.0 * self._capacity,
            energy_Wh=energy_wh,
            discharge_energy_Wh=discharge_energy_wh,
        ))
