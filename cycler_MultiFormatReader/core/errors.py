# cycler_MultiFormatReader/core/errors.py
from __future__ import annotations


class ParserError(Exception):
    """Base class for every fatal parse failure."""


class UnrecognizedFormatError(ParserError):
    def __init__(self, file_name: str = "", project_id: int = 0, trace: str = ""):
        self.file_name = file_name
        self.project_id = project_id
        self.trace = trace
        super().__init__(
            f"Unknown file format File: {file_name}, projectId: {project_id}, trace: {trace}"
        )


class MalformedRowError(ParserError):
    """A decoder that already owns the document could not read a required field."""

    def __init__(self, row_index: int | None, message: str | None = None):
        self.row_index = row_index
        super().__init__(message or f"Failed to parse row #{row_index}")


class UnknownStateError(MalformedRowError):
    def __init__(self, state: str, row_index: int | None = None):
        self.state = state
        super().__init__(row_index, f"Unknown state {state!r} on row #{row_index}")
