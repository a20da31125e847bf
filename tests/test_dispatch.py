from datetime import datetime, timedelta
import unittest

from cycler_MultiFormatReader.core.dispatch import FormatDispatcher
from cycler_MultiFormatReader.core.errors import UnrecognizedFormatError
from cycler_MultiFormatReader.core.model import ChannelSink, CycleStep, DataPoint, split_energy
from cycler_MultiFormatReader.core.pipeline import parse_sheets
from cycler_MultiFormatReader.loaders.workbook_loader import sheet_from_values
from cycler_MultiFormatReader.parsers.base import BaseDecoder
from cycler_MultiFormatReader.parsers.maccor_csv import MaccorCsvDecoder
from cycler_MultiFormatReader.parsers.maccor_text import MaccorTextDecoder
from cycler_MultiFormatReader.parsers.maccor_v2 import MaccorV2Decoder

_V2_HEADER = ["Cyc#", "Step", "StepTime", "Volts", "Amps", "Amp-hr", "Watt-hr", "State", "DPt Time"]


def _v2_sheet(name="Data"):
    t0 = datetime(2024, 1, 1, 10, 0, 0)
    return sheet_from_values(0, name, [
        _V2_HEADER,
        [0, 1, 0.0, 3.5, 0.0, 0.0, 0.0, "R", t0],
        [0, 2, 0.0, 3.6, 1.0, 0.1, 0.36, "C", t0 + timedelta(seconds=10)],
    ])


class _Recorder(BaseDecoder):
    """Never claims; remembers every event it was offered."""

    def __init__(self):
        super().__init__()
        self.events = []

    def on_sheet_start(self, index, name):
        self.events.append(("sheet_start", index))
        return False

    def on_data_row(self, index, row):
        self.events.append(("row", index))
        return False

    def on_sheet_end(self, index, name):
        self.events.append(("sheet_end", index))
        return False


class DispatcherPriorityTests(unittest.TestCase):
    def test_earlier_candidate_wins_when_both_claim(self):
        d = FormatDispatcher([MaccorV2Decoder(), MaccorTextDecoder()], ChannelSink())
        d.feed([_v2_sheet()])
        self.assertIsInstance(d.owner, MaccorV2Decoder)
        self.assertNotIsInstance(d.owner, MaccorTextDecoder)

        d = FormatDispatcher([MaccorTextDecoder(), MaccorV2Decoder()], ChannelSink())
        d.feed([_v2_sheet()])
        self.assertIsInstance(d.owner, MaccorTextDecoder)

    def test_later_candidates_stop_seeing_events_after_a_claim(self):
        recorder = _Recorder()
        d = FormatDispatcher([MaccorV2Decoder(), recorder], ChannelSink())
        d.feed([_v2_sheet(), _v2_sheet("Data 2")])
        self.assertIsInstance(d.owner, MaccorV2Decoder)
        # row 0 is claimed by the first candidate, so the recorder only saw the sheet start
        self.assertEqual([("sheet_start", 0)], recorder.events)

    def test_candidates_see_events_until_someone_claims(self):
        recorder = _Recorder()
        d = FormatDispatcher([recorder, MaccorV2Decoder()], ChannelSink())
        d.feed([sheet_from_values(0, "Info", [["x"]]), _v2_sheet()])
        self.assertEqual([("sheet_start", 0), ("row", 0), ("sheet_end", 0),
                          ("sheet_start", 0), ("row", 0)], recorder.events)

    def test_owner_receives_every_later_row(self):
        sink = ChannelSink()
        d = FormatDispatcher([MaccorCsvDecoder(), MaccorTextDecoder()], sink)
        result = d.feed([_v2_sheet("")])
        self.assertIsInstance(d.owner, MaccorCsvDecoder)
        self.assertEqual([0], list(result))
        self.assertEqual(2, len(result[0]))

    def test_default_priority_prefers_sheet_exports(self):
        result = parse_sheets([_v2_sheet("Data 1")])
        self.assertEqual(2, len(result[0]))
        self.assertEqual(0.0, result[0][0].time_seconds)
        self.assertEqual(10.0, result[0][1].time_seconds)


class UnrecognizedFormatTests(unittest.TestCase):
    def test_unknown_document_raises(self):
        sheet = sheet_from_values(0, "Sheet1", [["foo", "bar"], [1, 2]])
        with self.assertRaises(UnrecognizedFormatError) as ctx:
            parse_sheets([sheet], project_id=42, file_name="export.xlsx", trace="abc")
        self.assertEqual("export.xlsx", ctx.exception.file_name)
        self.assertEqual(42, ctx.exception.project_id)
        self.assertIn("projectId: 42", str(ctx.exception))

    def test_empty_document_raises(self):
        with self.assertRaises(UnrecognizedFormatError):
            parse_sheets([])
        with self.assertRaises(UnrecognizedFormatError):
            parse_sheets([sheet_from_values(0, "Data", [])])


class ChannelSinkTests(unittest.TestCase):
    def _point(self, t):
        return DataPoint(cycle_index=1, cycle_step=CycleStep.REST, time_seconds=t,
                         current_mA=0.0, voltage_V=3.0)

    def test_push_get_populate(self):
        sink = ChannelSink()
        sink.push(3, self._point(0.0))
        sink.populate(3, [self._point(1.0), self._point(2.0)])
        sink.push(1, self._point(0.0))
        self.assertEqual([1, 3], sink.channels())
        self.assertEqual([0.0, 1.0, 2.0], [p.time_seconds for p in sink.get(3)])
        with self.assertRaises(KeyError):
            sink.get(7)

    def test_power_and_energy_routing(self):
        p = DataPoint(cycle_index=1, cycle_step=CycleStep.DISCHARGE, time_seconds=0.0,
                      current_mA=-1000.0, voltage_V=3.5)
        self.assertEqual(-1000.0 * 3.5, p.power_mW)
        self.assertEqual((1.5, None), split_energy(CycleStep.CHARGE_CV, 1.5))
        self.assertEqual((None, 1.5), split_energy(CycleStep.DISCHARGE, 1.5))
        self.assertEqual((None, None), split_energy(CycleStep.REST, 1.5))
