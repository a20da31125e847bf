# cycler_MultiFormatReader/utils/config.py
from __future__ import annotations
import copy
import logging
from pathlib import Path

import yaml

# ----- defaults (used when no config file is given) -----
DEFAULTS: dict = {
    "csv": {
        "sep": ",",
        "encoding": "utf-8-sig",
    },
    "maccor_v2": {
        "energy_in_mwh": False,
    },
    "logging": {
        "verbose": False,
        "level": "INFO",
    },
}


def load_config(cfg_path: Path) -> dict:
    with Path(cfg_path).open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parser_settings(cfg: dict | None) -> dict:
    """
    Merge a (possibly partial) config over DEFAULTS.
    Only known sections/keys are taken; anything else is ignored.
    """
    out = copy.deepcopy(DEFAULTS)
    for section, values in (cfg or {}).items():
        if section not in out or not isinstance(values, dict):
            continue
        for key, value in values.items():
            if key in out[section] and value is not None:
                out[section][key] = value

    out["csv"]["sep"] = str(out["csv"]["sep"])
    out["csv"]["encoding"] = str(out["csv"]["encoding"])
    out["maccor_v2"]["energy_in_mwh"] = bool(out["maccor_v2"]["energy_in_mwh"])
    out["logging"]["verbose"] = bool(out["logging"]["verbose"])
    return out


def configure_logging(cfg: dict | None) -> None:
    """Optional: callers that want console output call this once at startup."""
    log_cfg = parser_settings(cfg)["logging"]
    level = "DEBUG" if log_cfg["verbose"] else str(log_cfg["level"]).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="[%(levelname)s] %(name)s: %(message)s")
    # basicConfig is a no-op once handlers exist
    root.setLevel(getattr(logging, level, logging.INFO))
