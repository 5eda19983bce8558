"""Table / JSON / CSV views over one page of schema-less documents."""
import csv
import io
import json
import logging
import datetime
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from .utils import to_jsonable

logger = logging.getLogger(__name__)

ID_FIELD = "_id"
COPY_FEEDBACK_SECONDS = 2.0


class _Missing:
    def __repr__(self):
        return "MISSING"


MISSING = _Missing()


class CellKind(str, Enum):
    NULL = "null"
    UNDEFINED = "undefined"
    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"


class ViewMode(str, Enum):
    TABLE = "table"
    JSON = "json"


@dataclass(frozen=True)
class Cell:
    kind: CellKind
    text: str


def format_cell(value: Any) -> Cell:
    if value is None:
        return Cell(CellKind.NULL, "null")
    if value is MISSING:
        return Cell(CellKind.UNDEFINED, "undefined")
    if isinstance(value, Mapping):
        return Cell(CellKind.OBJECT, "[Object]")
    if isinstance(value, (list, tuple)):
        return Cell(CellKind.ARRAY, f"[Array ({len(value)})]")
    if isinstance(value, bool):
        return Cell(CellKind.SCALAR, "true" if value else "false")
    return Cell(CellKind.SCALAR, str(value))


def derive_columns(documents: Sequence[Mapping[str, Any]]) -> List[str]:
    """Union of top-level keys, sorted, with ``_id`` first."""
    keys = set()
    for doc in documents:
        if isinstance(doc, Mapping):
            keys.update(doc.keys())
    return sorted(keys, key=lambda k: (k != ID_FIELD, k))


def split_csv_row(line: str) -> List[str]:
    """Split one CSV row on commas outside quotes, unescaping doubled quotes."""
    return next(csv.reader([line]))


class DocumentRenderer:
    def __init__(self, documents: Sequence[Mapping[str, Any]], page: int = 1, page_size: int = 25):
        self.documents = list(documents)
        self.page = max(1, page)
        self.page_size = page_size
        self.columns = derive_columns(self.documents)

    def rank(self, row_index: int) -> int:
        return (self.page - 1) * self.page_size + row_index + 1

    def cells(self, doc: Mapping[str, Any]) -> List[Cell]:
        return [format_cell(doc.get(col, MISSING)) for col in self.columns]

    def rows(self) -> List[List[str]]:
        """Table rows: absolute rank, then one formatted cell per column."""
        out = []
        for i, doc in enumerate(self.documents):
            out.append([str(self.rank(i))] + [c.text for c in self.cells(doc)])
        return out

    def to_json(self) -> str:
        return json.dumps(to_jsonable(self.documents), indent=2, ensure_ascii=False, default=str)

    def to_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(self.columns)
        for doc in self.documents:
            writer.writerow([c.text for c in self.cells(doc)])
        return buf.getvalue()

    def to_dataframe(self) -> pd.DataFrame:
        data = [[c.text for c in self.cells(doc)] for doc in self.documents]
        index = [self.rank(i) for i in range(len(self.documents))]
        return pd.DataFrame(data, columns=self.columns, index=index)

    def render(self, view_mode: ViewMode = ViewMode.TABLE) -> str:
        if ViewMode(view_mode) is ViewMode.JSON:
            return self.to_json()
        return self.to_csv()

    def export_excel(self, file_path: str, collection: Optional[str] = None) -> str:
        """Write the page to an .xlsx workbook (data sheet + metadata sheet)."""
        df = self.to_dataframe()
        with pd.ExcelWriter(file_path, engine="xlsxwriter") as writer:
            df.to_excel(writer, sheet_name="Data", index_label="#")

            workbook = writer.book
            worksheet = writer.sheets["Data"]
            header_format = workbook.add_format({
                "bold": True,
                "text_wrap": True,
                "valign": "top",
                "fg_color": "#D7E4BC",
                "border": 1,
            })
            for col_num, value in enumerate(df.columns.values, start=1):
                worksheet.write(0, col_num, value, header_format)
            for i, col in enumerate(df.columns, start=1):
                longest = df[col].astype(str).map(len).max() if len(df) else 0
                worksheet.set_column(i, i, min(max(longest, len(str(col))) + 2, 50))

            metadata_df = pd.DataFrame({
                "Property": ["Collection", "Export Date", "Page", "Page Size", "Documents"],
                "Value": [
                    collection or "",
                    datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                    self.page,
                    self.page_size,
                    len(self.documents),
                ],
            })
            metadata_df.to_excel(writer, sheet_name="Metadata", index=False)
        logger.info("Exported %d documents to %s", len(self.documents), file_path)
        return file_path


class CopyFeedback:
    """Transient "Copied!" / "Copy failed" message that clears itself."""

    def __init__(self, delay: float = COPY_FEEDBACK_SECONDS, on_change: Optional[Callable[[Optional[str]], None]] = None):
        self.delay = delay
        self.on_change = on_change
        self.message: Optional[str] = None
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._shown = 0

    def show(self, message: str):
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self._shown += 1
            self.message = message
            self._timer = threading.Timer(self.delay, self._expire, args=(self._shown,))
            self._timer.daemon = True
            self._timer.start()
        if self.on_change:
            self.on_change(message)

    def _expire(self, shown: int):
        with self._lock:
            # a newer message owns the display now
            if shown != self._shown:
                return
            self.message = None
        if self.on_change:
            self.on_change(None)

    def clear(self):
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self.message = None
        if self.on_change:
            self.on_change(None)

    def wait(self, timeout: Optional[float] = None):
        timer = self._timer
        if timer:
            timer.join(timeout)


def copy_to_clipboard(
    renderer: DocumentRenderer,
    view_mode: ViewMode,
    clipboard: Callable[[str], None],
    feedback: Optional[CopyFeedback] = None,
) -> bool:
    """Copy the JSON or CSV text matching the active view; report via ``feedback``."""
    try:
        clipboard(renderer.render(view_mode))
    except Exception as e:
        logger.warning("Copy to clipboard failed: %s", e)
        if feedback:
            feedback.show("Copy failed")
        return False
    if feedback:
        feedback.show("Copied!")
    return True


def row_dicts(renderer: DocumentRenderer) -> List[Dict[str, Any]]:
    """Rows as ``{"#": rank, column: {"kind", "text"}}`` for JSON consumers."""
    out = []
    for i, doc in enumerate(renderer.documents):
        row: Dict[str, Any] = {"#": renderer.rank(i)}
        for col, cell in zip(renderer.columns, renderer.cells(doc)):
            row[col] = {"kind": cell.kind.value, "text": cell.text}
        out.append(row)
    return out
