# cycler_MultiFormatReader/parsers/base.py
from __future__ import annotations
import logging

from ..core.model import ChannelSink, DataPoint
from ..core.normalize import Row


class BaseDecoder:
    """
    One vendor format, fed structural events by the dispatcher.

    Every hook returns True only when the decoder recognizes the document; once
    it owns the document the return value is ignored. Only ``on_data_row`` is
    mandatory.
    """

    name = "base"

    def __init__(self, logger: logging.Logger | None = None):
        self.log = logger or logging.getLogger(type(self).__module__)
        self._sink: ChannelSink | None = None

    def connect(self, sink: ChannelSink) -> None:
        self._sink = sink

    def on_sheet_start(self, index: int, name: str) -> bool:
        return False

    def on_data_row(self, index: int, row: Row) -> bool:
        raise NotImplementedError

    def on_sheet_end(self, index: int, name: str) -> bool:
        return False

    def on_document_end(self) -> None:
        pass

    def push(self, channel: int, point: DataPoint) -> None:
        self._sink.push(channel, point)
