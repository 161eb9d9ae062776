"""
Shared helpers for the donor/registration analysis: numeric coercion, counting,
column resolution, identity sets and serialization of result objects.
"""
import math
import re
from dataclasses import dataclass, fields, is_dataclass

import pandas as pd


# ---------------------------------------------------------
# NUMBERS AND COUNTING
# ---------------------------------------------------------

def to_numeric(series):
    """Currency-tolerant numeric coercion: strip '$' and ',', blanks and junk become NaN."""
    cleaned = series.astype(str).str.replace(r"[$,]", "", regex=True).str.strip()
    return pd.to_numeric(cleaned, errors="coerce")


def numeric_values(series):
    """Non-null numeric values of a column as a plain list of floats."""
    return [float(v) for v in to_numeric(series).dropna()]


def median(values):
    ordered = sorted(values)
    if not ordered:
        return 0
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def mean(values):
    return sum(values) / len(values) if values else 0


def count_by(values):
    """Frequency table of values, skipping empty and null keys."""
    counts = {}
    for value in values:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            continue
        key = value if isinstance(value, str) else str(value)
        if key == "":
            continue
        counts[key] = counts.get(key, 0) + 1
    return counts


def sort_desc(counts):
    """(key, count) pairs, highest count first; ties keep insertion order."""
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def round_half_up(value, digits=0):
    scale = 10 ** digits
    rounded = math.floor(value * scale + 0.5) / scale
    return int(rounded) if digits == 0 else rounded


def percent(part, whole):
    """part/whole as a percentage with one decimal, 0 for an empty whole."""
    if not whole:
        return 0
    return math.floor(part / whole * 1000 + 0.5) / 10


def year_label(year):
    return str(int(year)) if float(year).is_integer() else str(year)


def decade_of(year):
    return f"{int(year // 10 * 10)}s"


def class_years(series, low=1940, high=2035):
    """Numeric class years strictly inside (low, high)."""
    return [y for y in numeric_values(series) if low < y < high]


# ---------------------------------------------------------
# ROW FRAMES AND COLUMN RESOLUTION
# ---------------------------------------------------------

def frame_from_rows(rows):
    """Build a string-valued DataFrame from row mappings without touching the rows."""
    rows = list(rows)
    if not rows:
        return pd.DataFrame()
    frame = pd.DataFrame.from_records(rows)
    return frame.astype(object).where(frame.notna(), "")


def column(frame, name):
    """Column values, or an all-blank column when name is None or missing."""
    if name is not None and name in frame.columns:
        return frame[name]
    return pd.Series([""] * len(frame), index=frame.index, dtype=object)


def non_blank(series):
    return series.astype(str).str.strip() != ""


class ColumnResolver:
    """
    Resolves logical field names to actual header names once per dataset.

    Rule kinds:
    - ("exact", "Name"): case-insensitive, whitespace-trimmed equality, first hit
    - ("exact_last", "State"): case-sensitive equality, LAST occurrence; pandas'
      duplicate suffixes ("State.1") count as further occurrences
    - ("partial", ("guest email", "email")): case-insensitive substring, each
      fragment tried in order
    """

    def __init__(self, headers):
        self.headers = [str(h) for h in headers]

    def exact(self, name):
        target = name.strip().lower()
        for col in self.headers:
            if col.strip().lower() == target:
                return col
        return None

    def exact_last(self, name):
        pattern = re.compile(re.escape(name) + r"(\.\d+)?")
        matches = [col for col in self.headers if pattern.fullmatch(col.strip())]
        return matches[-1] if matches else None

    def partial(self, *fragments):
        for fragment in fragments:
            needle = fragment.lower()
            for col in self.headers:
                if needle in col.lower():
                    return col
        return None

    def resolve(self, rules):
        """Map each logical name in rules to a header name or None."""
        resolved = {}
        for key, (kind, arg) in rules.items():
            if kind == "exact":
                resolved[key] = self.exact(arg)
            elif kind == "exact_last":
                resolved[key] = self.exact_last(arg)
            elif kind == "partial":
                fragments = (arg,) if isinstance(arg, str) else tuple(arg)
                resolved[key] = self.partial(*fragments)
            else:
                raise ValueError(f"Unknown column rule kind: {kind}")
        return resolved


# ---------------------------------------------------------
# IDENTITY SETS
# ---------------------------------------------------------

def normalize_name(value):
    return str(value or "").strip().lower()


def normalize_email(value):
    email = str(value or "").strip().lower()
    return email if "@" in email else ""


def normalize_id(value):
    return str(value or "").strip()


@dataclass(frozen=True)
class IdentitySets:
    """Normalized matching keys. Internal only, never serialized."""
    names: frozenset = frozenset()
    emails: frozenset = frozenset()
    constituent_ids: frozenset = frozenset()


@dataclass(frozen=True)
class MatchKey:
    email: str
    constituent_id: str
    affiliation: str


def build_identity_sets(frame, name_col, email_col, id_col):
    names = {normalize_name(v) for v in column(frame, name_col)}
    emails = {normalize_email(v) for v in column(frame, email_col)}
    ids = {normalize_id(v) for v in column(frame, id_col)}
    return IdentitySets(
        names=frozenset(names - {""}),
        emails=frozenset(emails - {""}),
        constituent_ids=frozenset(ids - {""}),
    )


# ---------------------------------------------------------
# SERIALIZATION
# ---------------------------------------------------------

def camel_case(name):
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_serializable(value):
    """Dataclasses become camelCase dicts; tuples and sets become lists."""
    if is_dataclass(value) and not isinstance(value, type):
        return {camel_case(f.name): to_serializable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {key: to_serializable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(to_serializable(item) for item in value)
    return value
