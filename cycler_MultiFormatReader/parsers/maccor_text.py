# cycler_MultiFormatReader/parsers/maccor_text.py
from __future__ import annotations

from .maccor_v2 import MaccorV2Decoder


class MaccorTextDecoder(MaccorV2Decoder):
    """
    Maccor text/CSV exports that share the "Data" sheet vocabulary but not its
    sheet layout: any sheet name, no StepTime column, energy and temperature
    optional. Amps and amp-hours are scaled to mA/mAh like the sheet exports.
    """

    name = "maccor_text"

    REQUIRED = {
        "cycle": ("Cyc#",),
        "step": ("Step",),
        "voltage": ("Volts",),
        "current": ("Amps",),
        "capacity": ("Amp-hr",),
        "state": ("State",),
        "date_time": ("DPt Time",),
    }
    OPTIONAL = {
        "energy": ("Watt-hr",),
        "temperature": ("Temp 1",),
    }

    def is_known_sheet(self, name: str) -> bool:
        return True
