"""DataSet container and the CSV/XLSX loader.

A DataSet holds one pandas DataFrame per entity. Each frame carries the full
schema column set with ``object`` dtype so cell values keep the Python types
the caller supplied; absent fields are NaN.

DatasetLoader handles:
- Encoding detection via chardet (first 32 KB)
- Delimiter detection via csv.Sniffer (fallback: most frequent candidate)
- XLSX through pandas + openpyxl
- Numeric coercion of the numeric schema columns (``"3"`` -> ``3``)
"""

from __future__ import annotations

import codecs
import csv
import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import chardet
import numpy as np
import pandas as pd

from allocation_qa.core.parsers import is_blank
from allocation_qa.core.schema import (
    COLUMNS,
    ID_COLUMNS,
    NUMERIC_COLUMNS,
    TABLE_ENTITIES,
    Entity,
    as_entity,
)

_log = logging.getLogger(__name__)


def make_frame(entity: "Entity | str", records: Iterable[dict] | pd.DataFrame | None = None) -> pd.DataFrame:
    """Build an object-dtype frame holding every schema column of *entity*.

    Extra columns in the input are kept after the schema columns.
    """
    entity = as_entity(entity)
    if records is None:
        df = pd.DataFrame(columns=COLUMNS[entity], dtype=object)
    elif isinstance(records, pd.DataFrame):
        df = records.astype(object).reset_index(drop=True)
    else:
        df = pd.DataFrame(list(records), dtype=object)
    extra = [c for c in df.columns if c not in COLUMNS[entity]]
    df = df.reindex(columns=COLUMNS[entity] + extra)
    return df.astype(object).where(df.notna(), np.nan)


# ---------------------------------------------------------------------------
# DataSet
# ---------------------------------------------------------------------------


@dataclass
class DataSet:
    clients: pd.DataFrame = field(default_factory=lambda: make_frame(Entity.CLIENTS))
    workers: pd.DataFrame = field(default_factory=lambda: make_frame(Entity.WORKERS))
    tasks: pd.DataFrame = field(default_factory=lambda: make_frame(Entity.TASKS))

    @classmethod
    def from_records(
        cls,
        clients: Iterable[dict] | None = None,
        workers: Iterable[dict] | None = None,
        tasks: Iterable[dict] | None = None,
    ) -> "DataSet":
        return cls(
            clients=make_frame(Entity.CLIENTS, clients),
            workers=make_frame(Entity.WORKERS, workers),
            tasks=make_frame(Entity.TASKS, tasks),
        )

    @classmethod
    def from_frames(
        cls,
        clients: pd.DataFrame | None = None,
        workers: pd.DataFrame | None = None,
        tasks: pd.DataFrame | None = None,
    ) -> "DataSet":
        return cls.from_records(clients, workers, tasks)  # make_frame accepts frames

    @classmethod
    def from_dict(cls, d: dict) -> "DataSet":
        """Accept the JSON shape ``{"clients": [...], "workers": [...], "tasks": [...]}``."""
        return cls.from_records(
            d.get("clients") or [], d.get("workers") or [], d.get("tasks") or []
        )

    def frame(self, entity: "Entity | str") -> pd.DataFrame:
        entity = as_entity(entity)
        return getattr(self, entity.value)

    def set_frame(self, entity: "Entity | str", df: pd.DataFrame) -> None:
        entity = as_entity(entity)
        setattr(self, entity.value, make_frame(entity, df))

    def copy(self) -> "DataSet":
        return DataSet(
            clients=self.clients.copy(deep=True),
            workers=self.workers.copy(deep=True),
            tasks=self.tasks.copy(deep=True),
        )

    def counts(self) -> dict[str, int]:
        return {e.value: len(self.frame(e)) for e in TABLE_ENTITIES}

    def ids(self, entity: "Entity | str") -> list[str]:
        """Non-blank record IDs of *entity*, trimmed, in row order."""
        entity = as_entity(entity)
        col = self.frame(entity)[ID_COLUMNS[entity]]
        return [str(v).strip() for v in col if not is_blank(v)]

    def to_records(self, entity: "Entity | str") -> list[dict]:
        df = self.frame(entity)
        records = []
        for row in df.to_dict(orient="records"):
            records.append({k: _plain(v) for k, v in row.items() if not is_blank(v)})
        return records

    def to_dict(self) -> dict:
        return {e.value: self.to_records(e) for e in TABLE_ENTITIES}


def _plain(value: Any) -> Any:
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        return value.item()
    return value


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


@dataclass
class TableMeta:
    file_path: str
    encoding: str
    delimiter: str | None
    sheet_name: str | None
    original_shape: tuple[int, int]
    fingerprint: str


class DatasetLoader:
    """Load CSV or XLSX files into schema-shaped frames."""

    _FALLBACK_DELIMITERS = [";", ",", "\t", "|"]
    # latin-1 decodes any byte string, so it is the last resort
    _FALLBACK_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

    def load(
        self,
        path: str | Path,
        entity: "Entity | str",
        sheet_name: str | int | None = 0,
        encoding_hint: str | None = None,
        delimiter_hint: str | None = None,
    ) -> tuple[pd.DataFrame, TableMeta]:
        """Load one entity table and return (frame, TableMeta).

        Blank cells become NaN and the numeric schema columns of *entity* are
        converted to int (or float when not integral). Cells that do not parse
        as numbers stay as strings; the validator skips them.
        """
        entity = as_entity(entity)
        path = Path(path)
        suffix = path.suffix.lower()

        raw_bytes = path.read_bytes()
        fingerprint = hashlib.sha256(raw_bytes[:65536]).hexdigest()

        if suffix in {".xlsx", ".xlsm"}:
            df_raw, meta = self._load_xlsx(path, fingerprint, sheet_name)
        else:
            df_raw, meta = self._load_csv(
                path, raw_bytes, fingerprint, encoding_hint, delimiter_hint
            )

        df = df_raw.map(lambda v: np.nan if is_blank(v) else str(v).strip())
        df = make_frame(entity, df)
        for col in NUMERIC_COLUMNS[entity]:
            df[col] = df[col].map(_coerce_number).astype(object)

        _log.debug("Loaded %s: %d rows from %s", entity.value, len(df), path.name)
        return df, meta

    # ------------------------------------------------------------------
    # XLSX
    # ------------------------------------------------------------------

    def _load_xlsx(
        self, path: Path, fingerprint: str, sheet_name: str | int | None
    ) -> tuple[pd.DataFrame, TableMeta]:
        with pd.ExcelFile(path, engine="openpyxl") as xf:
            all_sheets = xf.sheet_names
            if isinstance(sheet_name, str):
                resolved_sheet = sheet_name
            else:
                idx = sheet_name if isinstance(sheet_name, int) else 0
                resolved_sheet = all_sheets[idx] if all_sheets else "Sheet1"
            df = xf.parse(resolved_sheet, header=0, dtype=str)

        meta = TableMeta(
            file_path=str(path.resolve()),
            encoding="utf-8",
            delimiter=None,
            sheet_name=resolved_sheet,
            original_shape=(len(df), len(df.columns)),
            fingerprint=fingerprint,
        )
        return df, meta

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def _load_csv(
        self,
        path: Path,
        raw_bytes: bytes,
        fingerprint: str,
        encoding_hint: str | None,
        delimiter_hint: str | None,
    ) -> tuple[pd.DataFrame, TableMeta]:
        encoding = encoding_hint or self._detect_encoding(raw_bytes)
        delimiter = delimiter_hint or self._detect_delimiter(raw_bytes, encoding)

        all_rows = self._read_csv_raw(path, delimiter, encoding)
        if not all_rows:
            df = pd.DataFrame(dtype=str)
        else:
            header, body = all_rows[0], all_rows[1:]
            width = max(len(r) for r in all_rows)
            header = self._header_names(header, width, path)
            # Pad short rows to uniform width
            padded = [r + [""] * (width - len(r)) for r in body]
            df = pd.DataFrame(padded, columns=header, dtype=str)

        meta = TableMeta(
            file_path=str(path.resolve()),
            encoding=encoding,
            delimiter=delimiter,
            sheet_name=None,
            original_shape=(len(df), len(df.columns)),
            fingerprint=fingerprint,
        )
        return df, meta

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _header_names(header: list[str], width: int, path: Path) -> list[str]:
        """Unique column names: blanks become ``Unnamed_<i>``, repeats ``name.1``.

        The first occurrence keeps the schema name, so a repeated ``ClientID``
        column is carried as an extra column and never read as the ID.
        """
        raw = [h.strip() for h in header] + [""] * (width - len(header))
        names: list[str] = []
        taken: set[str] = set()
        for i, name in enumerate(raw):
            name = name or f"Unnamed_{i}"
            if name in taken:
                base, n = name, 1
                while f"{base}.{n}" in taken:
                    n += 1
                name = f"{base}.{n}"
                _log.warning("%s: repeated column %r renamed to %r", path.name, base, name)
            taken.add(name)
            names.append(name)
        return names

    @staticmethod
    def _read_csv_raw(path: Path, delimiter: str, encoding: str) -> list[list[str]]:
        """Read rows with csv.reader so ragged lines keep their cells."""
        rows: list[list[str]] = []
        with path.open(newline="", encoding=encoding, errors="replace") as f:
            reader = csv.reader(f, delimiter=delimiter)
            for row in reader:
                if not any(cell.strip() for cell in row):
                    continue
                rows.append([cell if cell is not None else "" for cell in row])
        return rows

    @classmethod
    def _detect_encoding(cls, raw_bytes: bytes) -> str:
        """chardet's guess when confident and it decodes, else the first fallback that does."""
        sample = raw_bytes[:32768]
        guess = chardet.detect(sample)
        candidates = list(cls._FALLBACK_ENCODINGS)
        if guess.get("encoding") and guess.get("confidence", 0.0) >= 0.7:
            candidates.insert(0, guess["encoding"])
        for candidate in candidates:
            try:
                name = codecs.lookup(candidate).name
                # incremental: the 32 KB cut may split a multi-byte character
                codecs.getincrementaldecoder(name)().decode(sample, final=False)
            except (LookupError, UnicodeDecodeError):
                continue
            return "utf-8" if name == "ascii" else name
        return "latin-1"

    @staticmethod
    def _detect_delimiter(raw_bytes: bytes, encoding: str) -> str:
        sample = raw_bytes[:32768].decode(encoding, errors="replace")
        # Phase lists like "[1,2,3]" inside quoted cells confuse the sniffer
        # less when it only sees the header line first.
        header = sample.splitlines()[0] if sample else ""
        try:
            dialect = csv.Sniffer().sniff(header or sample, delimiters=",;\t|")
            return dialect.delimiter
        except csv.Error:
            counts = {d: header.count(d) for d in DatasetLoader._FALLBACK_DELIMITERS}
            best = max(counts, key=lambda k: counts[k])
            return best if counts[best] > 0 else ","


def _coerce_number(value: Any) -> Any:
    if is_blank(value) or not isinstance(value, str):
        return value
    try:
        num = float(value)
    except ValueError:
        return value
    if num != num:
        return value
    return int(num) if num.is_integer() else num


def load_dataset(
    clients: str | Path,
    workers: str | Path,
    tasks: str | Path,
    loader: DatasetLoader | None = None,
) -> DataSet:
    """Load the three entity files into a DataSet."""
    loader = loader or DatasetLoader()
    frames = {}
    for entity, path in zip(TABLE_ENTITIES, (clients, workers, tasks)):
        frames[entity.value], _meta = loader.load(path, entity)
    return DataSet(**frames)
