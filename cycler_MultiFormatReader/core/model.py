# cycler_MultiFormatReader/core/model.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum


class CycleStep(Enum):
    REST = "Rest"
    CHARGE_CC = "ChargeConstantCurrent"
    CHARGE_CV = "ChargeConstantVoltage"
    DISCHARGE = "Discharge"

    @property
    def is_charge(self) -> bool:
        return self in (CycleStep.CHARGE_CC, CycleStep.CHARGE_CV)

    @property
    def is_discharge(self) -> bool:
        return self is CycleStep.DISCHARGE


@dataclass
class DataPoint:
    cycle_index: int
    cycle_step: CycleStep
    time_seconds: float            # seconds since the first point of the channel
    current_mA: float
    voltage_V: float
    capacity_mAh: float | None = None
    energy_Wh: float | None = None            # charge steps only
    discharge_energy_Wh: float | None = None  # discharge steps only
    temperature: float | None = None
    power_mW: float = field(init=False)

    def __post_init__(self):
        self.power_mW = self.current_mA * self.voltage_V


def split_energy(step: CycleStep, energy: float | None) -> tuple[float | None, float | None]:
    """Route one energy reading to (energy_Wh, discharge_energy_Wh) by step direction."""
    if step.is_charge:
        return energy, None
    if step.is_discharge:
        return None, energy
    return None, None


class ChannelSink:
    """Append-only per-channel accumulation of DataPoints, in arrival order."""

    def __init__(self):
        self._channels: dict[int, list[DataPoint]] = {}

    def push(self, channel: int, point: DataPoint) -> None:
        self._channels.setdefault(channel, []).append(point)

    def get(self, channel: int) -> list[DataPoint]:
        return self._channels[channel]

    def populate(self, channel: int, points: list[DataPoint]) -> None:
        self._channels.setdefault(channel, []).extend(points)

    def channels(self) -> list[int]:
        return sorted(self._channels)

    def as_dict(self) -> dict[int, list[DataPoint]]:
        return self._channels
