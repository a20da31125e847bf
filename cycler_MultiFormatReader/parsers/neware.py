# cycler_MultiFormatReader/parsers/neware.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
import re

from ..core.errors import MalformedRowError, UnknownStateError
from ..core.model import CycleStep, DataPoint, split_energy
from ..core.normalize import (Row, coerce_datetime, coerce_float, coerce_int,
                              coerce_string, find_column, is_empty, row_values)
from .base import BaseDecoder

_SHEET_NAME = re.compile(r"^Detail_[0-9_]+.*", re.IGNORECASE | re.DOTALL)

_STATUSES: dict[str, CycleStep] = {
    "rest": CycleStep.REST,
    "cc_dchg": CycleStep.DISCHARGE,
    "cccv_dchg": CycleStep.DISCHARGE,
    "cc_chg": CycleStep.CHARGE_CC,
    # CC charge that switches to CV once the charge voltage is reached
    "cccv_chg": CycleStep.CHARGE_CC,
    "cv_chg": CycleStep.CHARGE_CV,
}


def status_to_step(status: str, row_index: int | None = None) -> CycleStep:
    try:
        return _STATUSES[status.strip().lower()]
    except KeyError:
        raise UnknownStateError(status, row_index) from None


@dataclass
class _Header:
    cycle: int
    step: int
    status: int
    current: int        # A
    voltage: int
    capacity: int       # Ah, per step
    realtime: int
    energy: int
    energy_in_mwh: bool


@dataclass
class _NewareRow:
    cycle_id: int
    step_id: int
    status: str
    current: float
    voltage: float
    capacity: float
    realtime: datetime
    energy: float


class NewareDecoder(BaseDecoder):
    """
    Neware "Detail_<unit>_<box>_<channel>" sheets.

    The capacity column restarts at every step; the emitted capacity runs
    through the cycle, separately for charge and discharge.
    """

    name = "neware"

    def __init__(self, logger=None):
        super().__init__(logger)
        self._on_known_sheet = False
        self._header: _Header | None = None
        self._channel = 0

        self._cycle_index = 1
        self._total_charge = 0.0
        self._total_discharge = 0.0
        self._step_start_capacity = 0.0
        self._starts: dict[int, datetime] = {}    # t=0 per channel
        self._prev: _NewareRow | None = None

    def on_sheet_start(self, index: int, name: str) -> bool:
        self.log.info("Try parse sheet #%d with name %s", index + 1, name)
        self._on_known_sheet = bool(_SHEET_NAME.match(name))
        if self._on_known_sheet:
            parts = name.split("_")
            if len(parts) == 4 and parts[0] == "Detail":
                if re.fullmatch(r"[0-9]+", parts[3]):
                    self._channel = int(parts[3])
                else:
                    self.log.warning("Cannot read channel number from sheet name %s, keeping %d",
                                     name, self._channel)
        self._header = None
        return False

    def on_data_row(self, index: int, row: Row) -> bool:
        if not self._on_known_sheet:
            return False

        if self._header is None:
            if index > 1:
                self._on_known_sheet = False
                return False
            self._header = self._parse_header(row)
            return self._header is not None

        if is_empty(row):
            return True

        data = self._read_row(row)
        if data is None:
            raise MalformedRowError(index)
        self._process(index, data)
        return True

    def _parse_header(self, row: Row) -> _Header | None:
        self.log.info("Try parse header with values: %s", row_values(row))
        cols = {
            "cycle": find_column(row, "Cycle"),
            "step": find_column(row, "Step"),
            "status": find_column(row, "Status"),
            "current": find_column(row, "Cur(A)"),
            "voltage": find_column(row, "Voltage(V)"),
            "capacity": find_column(row, "Capacity(Ah)"),
            "realtime": find_column(row, "Absolute time"),
            "energy": find_column(row, "Energy(Wh)", "Energy(mWh)"),
        }
        if any(v is None for v in cols.values()):
            return None
        in_mwh = row.values[cols["energy"]].strip().lower() == "energy(mwh)"
        return _Header(energy_in_mwh=in_mwh, **cols)

    def _read_row(self, row: Row) -> _NewareRow | None:
        h = self._header
        values = dict(
            cycle_id=coerce_int(row, h.cycle),
            step_id=coerce_int(row, h.step),
            status=coerce_string(row, h.status),
            current=coerce_float(row, h.current),
            voltage=coerce_float(row, h.voltage),
            capacity=coerce_float(row, h.capacity),
            realtime=coerce_datetime(row, h.realtime),
            energy=coerce_float(row, h.energy),
        )
        if any(v is None for v in values.values()):
            return None
        return _NewareRow(**values)

    def _process(self, row_index: int, row: _NewareRow) -> None:
        prev = self._prev
        if prev is not None and prev.cycle_id != row.cycle_id:
            self._cycle_index += 1
            self._total_charge = 0.0
            self._total_discharge = 0.0
            self.log.debug("cycle %d starts at row #%d", self._cycle_index, row_index)

        step = status_to_step(row.status, row_index)

        if prev is not None and prev.step_id != row.step_id:
            if step.is_charge:
                self._step_start_capacity = self._total_charge
            elif step.is_discharge:
                self._step_start_capacity = self._total_discharge
            else:
                self._step_start_capacity = 0.0

        capacity = self._step_start_capacity + row.capacity
        if step.is_charge:
            self._total_charge = capacity
        elif step.is_discharge:
            self._total_discharge = capacity

        start = self._starts.setdefault(self._channel, row.realtime)

        energy = row.energy / 1000 if self._header.energy_in_mwh else row.energy
        energy_wh, discharge_energy_wh = split_energy(step, energy)

        self.push(self._channel, DataPoint(
            cycle_index=self._cycle_index,
            cycle_step=step,
            time_seconds=(row.realtime - start).total_seconds(),
            current_mA=1000 * row.current,
            voltage_V=row.voltage,
            capacity_mAh=1000 * capacity,
            energy_Wh=energy_wh,
            discharge_energy_Wh=discharge_energy_wh,
        ))
        self._prev = row
