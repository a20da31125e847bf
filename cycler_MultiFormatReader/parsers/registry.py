# cycler_MultiFormatReader/parsers/registry.py
from __future__ import annotations
import logging

from ..utils.config import parser_settings
from .arbin import ArbinDecoder
from .base import BaseDecoder
from .land import LandDecoder
from .maccor import MaccorDecoder
from .maccor_csv import MaccorCsvDecoder
from .maccor_text import MaccorTextDecoder
from .maccor_v2 import MaccorV2Decoder
from .neware import NewareDecoder


def default_decoders(cfg: dict | None = None,
                     logger: logging.Logger | None = None) -> list[BaseDecoder]:
    """
    Fresh decoder instances in claim priority. Order matters: the Maccor CSV
    decoder must come before the generic Maccor text one, and Land, whose
    header check is the loosest, goes last.
    """
    settings = parser_settings(cfg)
    return [
        ArbinDecoder(logger),
        MaccorDecoder(logger),
        MaccorV2Decoder(logger, energy_in_mwh=settings["maccor_v2"]["energy_in_mwh"]),
        MaccorCsvDecoder(logger),
        MaccorTextDecoder(logger),
        NewareDecoder(logger),
        LandDecoder(logger),
    ]
