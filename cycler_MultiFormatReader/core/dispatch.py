# cycler_MultiFormatReader/core/dispatch.py
from __future__ import annotations
import logging
from typing import Callable, Iterable, Sequence

from .errors import UnrecognizedFormatError
from .model import ChannelSink
from ..loaders.workbook_loader import Sheet
from ..parsers.base import BaseDecoder

_LOG = logging.getLogger(__name__)


class FormatDispatcher:
    """
    Streams sheet/row events to candidate decoders until one claims the
    document, then routes everything to that owner.

    Priority is the order of ``candidates``: candidates are asked in order and
    the first one that claims wins; later candidates never see that event.
    """

    def __init__(self, candidates: Sequence[BaseDecoder], sink: ChannelSink,
                 logger: logging.Logger | None = None):
        self.candidates = list(candidates)
        self.sink = sink
        self.owner: BaseDecoder | None = None
        self.log = logger or _LOG

    def _emit(self, hook: Callable[[BaseDecoder], bool]) -> None:
        if self.owner is not None:
            hook(self.owner)
            return
        for decoder in self.candidates:
            if hook(decoder):
                self.log.info("Parser for data file was found: %s", type(decoder).__name__)
                self.owner = decoder
                decoder.connect(self.sink)
                return

    def feed(self, sheets: Iterable[Sheet], file_name: str = "", project_id: int = 0,
             trace: str = "") -> dict:
        for sheet in sheets:
            self._emit(lambda d: d.on_sheet_start(sheet.index, sheet.name))
            for row_index, row in enumerate(sheet.rows):
                self._emit(lambda d: d.on_data_row(row_index, row))
            self._emit(lambda d: d.on_sheet_end(sheet.index, sheet.name))

        if self.owner is None:
            raise UnrecognizedFormatError(file_name, project_id, trace)
        self.owner.on_document_end()
        return self.sink.as_dict()
