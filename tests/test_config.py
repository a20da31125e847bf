import logging
from pathlib import Path
import tempfile
import unittest

from cycler_MultiFormatReader.parsers.maccor_v2 import MaccorV2Decoder
from cycler_MultiFormatReader.parsers.registry import default_decoders
from cycler_MultiFormatReader.utils.config import (DEFAULTS, configure_logging, load_config,
                                                  parser_settings)


class ConfigTests(unittest.TestCase):
    def test_missing_config_means_defaults(self):
        self.assertEqual(DEFAULTS, parser_settings(None))
        self.assertEqual(DEFAULTS, parser_settings({}))

    def test_known_keys_are_merged(self):
        settings = parser_settings({
            "csv": {"sep": ";", "bogus": 1},
            "maccor_v2": {"energy_in_mwh": True},
            "reports": {"format": "csv"},
            "logging": None,
        })
        self.assertEqual(";", settings["csv"]["sep"])
        self.assertEqual("utf-8-sig", settings["csv"]["encoding"])
        self.assertNotIn("bogus", settings["csv"])
        self.assertNotIn("reports", settings)
        self.assertTrue(settings["maccor_v2"]["energy_in_mwh"])
        self.assertFalse(settings["logging"]["verbose"])
        # defaults are never mutated
        self.assertEqual(",", DEFAULTS["csv"]["sep"])

    def test_load_yaml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yaml"
            path.write_text("csv:\n  sep: \"\\t\"\nmaccor_v2:\n  energy_in_mwh: true\n", encoding="utf-8")
            cfg = load_config(path)

            empty = Path(tmpdir) / "empty.yaml"
            empty.write_text("", encoding="utf-8")
            self.assertEqual({}, load_config(empty))

        self.assertEqual("\t", parser_settings(cfg)["csv"]["sep"])
        decoders = default_decoders(cfg)
        v2 = next(d for d in decoders if type(d) is MaccorV2Decoder)
        self.assertTrue(v2.energy_in_mwh)

    def test_registry_order(self):
        names = [d.name for d in default_decoders()]
        self.assertEqual(["arbin", "maccor", "maccor_v2", "maccor_csv", "maccor_text", "neware",
                          "land"], names)


class ConfigureLoggingTests(unittest.TestCase):
    def setUp(self):
        root = logging.getLogger()
        self.addCleanup(root.setLevel, root.level)

    def test_level_from_config(self):
        configure_logging({"logging": {"level": "warning"}})
        self.assertEqual(logging.WARNING, logging.getLogger().level)

    def test_verbose_means_debug(self):
        configure_logging({"logging": {"verbose": True, "level": "ERROR"}})
        self.assertEqual(logging.DEBUG, logging.getLogger().level)

    def test_defaults_to_info(self):
        configure_logging(None)
        self.assertEqual(logging.INFO, logging.getLogger().level)
