# cycler_MultiFormatReader/utils/detect.py
from __future__ import annotations
from typing import BinaryIO, Literal

DetectedKind = Literal["xlsx", "xls", "unknown"]

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

_ENGINES: dict[str, str] = {
    "xlsx": "openpyxl",
    "xls": "xlrd",
}


def detect_kind(head: bytes) -> DetectedKind:
    """
    Classify a document by its leading bytes.
    - zip container  -> 'xlsx'
    - OLE2 compound  -> 'xls'
    else             -> 'unknown' (CSV or something pandas has to figure out)
    """
    if head.startswith(_ZIP_MAGIC):
        return "xlsx"
    if head.startswith(_OLE_MAGIC):
        return "xls"
    return "unknown"


def sniff_kind(stream: BinaryIO) -> DetectedKind:
    """Peek at the stream head and rewind to where it was."""
    pos = stream.tell()
    try:
        return detect_kind(stream.read(8))
    finally:
        stream.seek(pos)


def excel_engine(kind: DetectedKind) -> str | None:
    return _ENGINES.get(kind)
