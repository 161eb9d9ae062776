"""
Decoding uploaded exports into row mappings, plus two-row header handling.

Rows are plain dicts of column name -> string value. Both CSV and Excel
containers are read through pandas with every value kept as text.
"""
import io
import logging
import warnings

import pandas as pd

from analysis_errors import EmptyFileError, ParseError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------

# Labels found in the category row that some registration exports put above
# the real header row
CATEGORY_MARKERS = ("Guest Form Data", "Profile Data", "Sub Events Attending", "UTM Parameters")

ZIP_MAGIC = b"PK"
OLE_MAGIC = b"\xd0\xcf\x11\xe0"


# ---------------------------------------------------------
# LOADER
# ---------------------------------------------------------

def is_spreadsheet(buffer):
    """Detect XLSX (ZIP container) or XLS (OLE compound document) by magic bytes."""
    head = bytes(buffer[:8])
    return head.startswith(ZIP_MAGIC) or head.startswith(OLE_MAGIC)


def _frame_to_rows(frame):
    frame.columns = [str(c) for c in frame.columns]
    frame = frame.astype(object).where(frame.notna(), "")
    if frame.empty:
        return []
    filled = frame.apply(lambda col: col.astype(str).str.strip() != "").any(axis=1)
    return frame[filled].to_dict(orient="records")


def _read_csv(data):
    """One pandas read of data; returns (frame, messages for skipped lines)."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", pd.errors.ParserWarning)
        frame = pd.read_csv(
            io.BytesIO(data),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
            encoding="utf-8-sig",
            encoding_errors="replace",
            on_bad_lines="warn",
        )
    skipped = [
        str(w.message).strip() for w in caught
        if issubclass(w.category, pd.errors.ParserWarning)
    ]
    return frame, skipped


def _leading_rows(data):
    """Rows from the longest leading run of lines that parses without a tokenizer error."""
    lines = data.splitlines(keepends=True)
    good, bad = 0, len(lines)
    rows = []
    while bad - good > 1:
        mid = (good + bad) // 2
        try:
            frame, _ = _read_csv(b"".join(lines[:mid]))
        except pd.errors.EmptyDataError:
            good, rows = mid, []
        except pd.errors.ParserError:
            bad = mid
        else:
            good, rows = mid, _frame_to_rows(frame)
    return rows


def parse_csv(buffer):
    """
    Parse delimited text with the first line as headers.

    Malformed lines are skipped. When the tokenizer gives up part way (for
    example an unterminated quote), the rows before the failure are kept;
    ParseError is raised only when errors leave no rows at all.
    """
    data = bytes(buffer)
    try:
        frame, skipped = _read_csv(data)
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        rows = _leading_rows(data)
        if not rows:
            raise ParseError(f"Failed to parse CSV: {e}") from e
        logger.warning(f"CSV parse stopped early ({e}); kept {len(rows)} rows before the malformed line")
        return rows

    for message in skipped:
        logger.warning(f"Skipped malformed CSV lines: {message}")

    rows = _frame_to_rows(frame)
    if skipped and not rows:
        raise ParseError(f"Failed to parse CSV: every data line was malformed ({skipped[0]})")
    return rows


def parse_spreadsheet(buffer):
    """Read the first sheet; first row is the header, blank cells become ''."""
    frame = pd.read_excel(io.BytesIO(bytes(buffer)), sheet_name=0, dtype=str, keep_default_na=False)
    return _frame_to_rows(frame)


def load_rows(buffer, label="File"):
    """
    Decode a file buffer into a list of row dicts.

    Raises EmptyFileError (naming the file via label) when nothing usable is found.
    """
    if buffer is None:
        raise EmptyFileError(label)

    if is_spreadsheet(buffer):
        logger.debug(f"{label}: detected spreadsheet container")
        rows = parse_spreadsheet(buffer)
    else:
        rows = parse_csv(buffer)

    if not rows:
        raise EmptyFileError(label)

    logger.info(f"{label}: loaded {len(rows)} rows, {len(rows[0])} columns")
    return rows


# ---------------------------------------------------------
# HEADER NORMALIZER
# ---------------------------------------------------------

def _is_category_row(row):
    keys = [k for k in row.keys() if isinstance(k, str)]
    values = [v for v in row.values() if isinstance(v, str)]
    return any(k.strip() in CATEGORY_MARKERS for k in keys) or \
        any(v.strip() in CATEGORY_MARKERS for v in values)


def _dedupe_headers(headers):
    """Suffix repeated names the way pandas does: State, State.1, State.2."""
    counts = {}
    unique = []
    for name in headers:
        candidate = name
        while candidate in counts:
            counts[name] += 1
            candidate = f"{name}.{counts[name]}"
        counts.setdefault(candidate, 0)
        unique.append(candidate)
    return unique


def normalize_headers(rows):
    """
    Collapse a category-row + header-row export into a single header.

    When the first row (its keys or its values) carries a category marker, that
    row's values become the column names (falling back to the original key for
    blank cells) and the remaining rows are re-keyed. Otherwise rows are
    returned unchanged.
    """
    if not rows or not _is_category_row(rows[0]):
        return rows

    header_row = rows[0]
    orig_keys = list(header_row.keys())
    new_headers = []
    for key in orig_keys:
        value = header_row[key]
        if isinstance(value, str) and value.strip() != "":
            new_headers.append(value.strip())
        else:
            new_headers.append(key)
    new_headers = _dedupe_headers(new_headers)

    remapped = [
        {new: row.get(orig, "") for orig, new in zip(orig_keys, new_headers)}
        for row in rows[1:]
    ]
    logger.info(f"Collapsed two-row header: {len(new_headers)} columns, {len(remapped)} data rows")
    return remapped
