# cycler_MultiFormatReader/core/pipeline.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import BinaryIO, Iterable

import pandas as pd

from .dispatch import FormatDispatcher
from .model import ChannelSink, DataPoint
from ..loaders.workbook_loader import Sheet, open_row_source
from ..parsers.registry import default_decoders

_LOG = logging.getLogger(__name__)

# canonical column order of the frame export
FRAME_COLUMNS = [
    "cycle_index",
    "cycle_step",
    "time_seconds",
    "current_mA",
    "voltage_V",
    "capacity_mAh",
    "energy_Wh",
    "discharge_energy_Wh",
    "power_mW",
    "temperature",
]


def parse_sheets(sheets: Iterable[Sheet], project_id: int = 0, file_name: str = "",
                 trace: str = "", cfg: dict | None = None,
                 logger: logging.Logger | None = None) -> dict[int, list[DataPoint]]:
    """
    Run a pre-built row source through a fresh dispatcher, decoder set and sink.
    ``logger`` is handed to the dispatcher and every decoder.
    """
    log = logger or _LOG
    dispatcher = FormatDispatcher(default_decoders(cfg, logger), ChannelSink(), logger)
    result = dispatcher.feed(sheets, file_name=file_name, project_id=project_id, trace=trace)
    log.info("Parsed %s: %d channel(s), %d point(s)", file_name or "<stream>",
             len(result), sum(len(v) for v in result.values()))
    return result


def parse(stream: BinaryIO, project_id: int = 0, file_name: str = "", trace: str = "",
          cfg: dict | None = None,
          logger: logging.Logger | None = None) -> dict[int, list[DataPoint]]:
    sheets = open_row_source(stream, cfg)
    return parse_sheets(sheets, project_id=project_id, file_name=file_name, trace=trace,
                        cfg=cfg, logger=logger)


def parse_file(path: Path | str, project_id: int = 0, trace: str = "",
               cfg: dict | None = None,
               logger: logging.Logger | None = None) -> dict[int, list[DataPoint]]:
    path = Path(path)
    with open(path, "rb") as f:
        return parse(f, project_id=project_id, file_name=path.name, trace=trace, cfg=cfg,
                     logger=logger)


def to_frame(points: Iterable[DataPoint]) -> pd.DataFrame:
    """
    One row per DataPoint with the canonical columns; ``cycle_step`` holds the
    step's name (e.g. "ChargeConstantCurrent").
    """
    records = [
        {
            "cycle_index": p.cycle_index,
            "cycle_step": p.cycle_step.value,
            "time_seconds": p.time_seconds,
            "current_mA": p.current_mA,
            "voltage_V": p.voltage_V,
            "capacity_mAh": p.capacity_mAh,
            "energy_Wh": p.energy_Wh,
            "discharge_energy_Wh": p.discharge_energy_Wh,
            "power_mW": p.power_mW,
            "temperature": p.temperature,
        }
        for p in points
    ]
    return pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)
