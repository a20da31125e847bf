# cycler_MultiFormatReader/loaders/workbook_loader.py
from __future__ import annotations
import io
import logging
from dataclasses import dataclass, field
from typing import BinaryIO

import pandas as pd

from ..core.normalize import Row
from ..utils.config import parser_settings
from ..utils.detect import excel_engine, sniff_kind

_LOG = logging.getLogger(__name__)


@dataclass
class Sheet:
    index: int                  # 0-based ordinal in the document
    name: str                   # "" for the CSV fallback
    rows: list[Row] = field(default_factory=list)


def sheet_from_values(index: int, name: str, rows) -> Sheet:
    """Build a sheet from plain Python rows (lists of native cell values)."""
    return Sheet(index=index, name=name, rows=[r if isinstance(r, Row) else Row(r) for r in rows])


# ---------- workbook ----------
def _rows_from_frame(df: pd.DataFrame, blank_is_empty: bool = False) -> list[Row]:
    rows = []
    for values in df.itertuples(index=False, name=None):
        if blank_is_empty:
            values = [None if v == "" else v for v in values]
        rows.append(Row(values))
    return rows


def _sheets_from_workbook(xl: pd.ExcelFile) -> list[Sheet]:
    sheets = []
    for i, name in enumerate(xl.sheet_names):
        # dtype=object keeps every cell's native type (str/int/float/datetime/...)
        df = xl.parse(name, header=None, dtype=object)
        sheets.append(Sheet(index=i, name=str(name), rows=_rows_from_frame(df)))
    return sheets


# ---------- CSV fallback ----------
def _sheets_from_csv(raw: bytes, sep: str, encoding: str) -> list[Sheet]:
    text = raw.decode(encoding)
    # ragged exports (a short metadata line before the header) need an explicit width;
    # quoted separators only widen it, which just adds empty cells
    width = max((line.count(sep) + 1 for line in text.splitlines() if line), default=0)
    if width == 0:
        return [Sheet(index=0, name="")]
    df = pd.read_csv(io.StringIO(text), sep=sep, header=None, names=list(range(width)),
                     dtype=str, keep_default_na=False, skip_blank_lines=False)
    return [Sheet(index=0, name="", rows=_rows_from_frame(df, blank_is_empty=True))]


def open_row_source(stream: BinaryIO, cfg: dict | None = None) -> list[Sheet]:
    """
    Read a byte stream as a workbook; if no workbook reader can open it, retry
    the same stream as a single-sheet delimited text table.
    """
    settings = parser_settings(cfg)
    start = stream.tell()
    kind = sniff_kind(stream)
    try:
        xl = pd.ExcelFile(stream, engine=excel_engine(kind))
    except Exception as exc:
        _LOG.info("Unable to create excel data reader (%s). Try to create CSV reader", exc)
        stream.seek(start)
        return _sheets_from_csv(stream.read(), settings["csv"]["sep"], settings["csv"]["encoding"])

    with xl:
        return _sheets_from_workbook(xl)
