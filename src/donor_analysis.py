"""
Aggregate statistics over a donor/CRM export.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from analysis_utils import (
    ColumnResolver,
    IdentitySets,
    build_identity_sets,
    class_years,
    column,
    count_by,
    decade_of,
    frame_from_rows,
    mean,
    median,
    non_blank,
    numeric_values,
    percent,
    round_half_up,
    sort_desc,
    to_numeric,
    to_serializable,
    year_label,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------

DONOR_COLUMNS = {
    "id": ("exact", "ID"),
    "name": ("exact", "Name"),
    "email": ("exact", "Email"),
    "constituency": ("exact", "Constituency Code"),
    "class_year": ("exact", "CL YR"),
    "state": ("exact_last", "State"),
    "greek": ("exact", "Greek Affiliation"),
    "major": ("exact", "Major"),
    "lifetime_giving": ("exact", "LT Giving"),
    "last_gift": ("exact", "Last Gift Amount"),
    "wealth_estimate": ("exact", "WE Range"),
    "gift_capacity": ("exact", "Internal Gift Capacity"),
    "eng_score": ("exact", "Eng Score"),
    "employer": ("exact", "CnPrBs_Org_Name"),
    "position": ("exact", "CnPrBs_Position"),
    "spouse_name": ("exact", "SP Name"),
    "spouse_class_year": ("exact", "SP CL YR"),
}

# Annual fund columns look like "AF17 - Gifts"
ANNUAL_FUND_PATTERN = re.compile(r"^AF(\d{2}) - Gifts$", re.IGNORECASE)

NO_MAJOR = "MAUNDE"
OHIO_KEYS = ("OH", "Ohio")
CLASS_YEAR_TOP_N = 15

# (label, lower bound inclusive, upper bound exclusive); $0 is its own band
GIVING_TIERS = [
    ("$1-99", 0, 100),
    ("$100-999", 100, 1000),
    ("$1K-9.9K", 1000, 10000),
    ("$10K-99K", 10000, 100000),
    ("$100K+", 100000, float("inf")),
]


# ---------------------------------------------------------
# RESULT TYPES
# ---------------------------------------------------------

@dataclass(frozen=True)
class GivingSummary:
    lifetime_total: float = 0
    lifetime_mean: float = 0
    lifetime_median: float = 0
    lifetime_max: float = 0
    last_gift_mean: float = 0
    last_gift_median: float = 0
    donors_count: int = 0
    non_donors: int = 0
    tiers: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class FiscalYearGiving:
    year: str
    amount: int


@dataclass(frozen=True)
class DonorSummary:
    """The externally visible part of donor statistics."""
    total: int = 0
    constituency: Dict[str, int] = field(default_factory=dict)
    class_year_counts: Dict[str, int] = field(default_factory=dict)
    class_decades: Dict[str, int] = field(default_factory=dict)
    class_year_top: List[Tuple[str, int]] = field(default_factory=list)
    states: Dict[str, int] = field(default_factory=dict)
    unique_states: int = 0
    ohio_count: int = 0
    ohio_pct: float = 0
    greek_total: int = 0
    greek_none: int = 0
    greek: Dict[str, int] = field(default_factory=dict)
    majors: Dict[str, int] = field(default_factory=dict)
    giving: GivingSummary = field(default_factory=GivingSummary)
    fy_giving: List[FiscalYearGiving] = field(default_factory=list)
    wealth_estimate: Dict[str, int] = field(default_factory=dict)
    gift_capacity: Dict[str, int] = field(default_factory=dict)
    eng_score_mean: float = 0
    eng_score_median: float = 0
    employers: Dict[str, int] = field(default_factory=dict)
    positions: Dict[str, int] = field(default_factory=dict)
    spouse_count: int = 0
    spouse_alumni: int = 0


@dataclass(frozen=True)
class DonorStats:
    summary: DonorSummary
    identity: IdentitySets

    def to_external(self):
        """Serializable dict without identity sets; names are reduced to a count."""
        external = to_serializable(self.summary)
        external["namesCount"] = len(self.identity.names)
        return external


# ---------------------------------------------------------
# AGGREGATION
# ---------------------------------------------------------

def giving_tier_counts(values):
    """Partition lifetime giving values into the fixed bands."""
    tiers = {"$0": sum(1 for v in values if v == 0)}
    for label, low, high in GIVING_TIERS:
        if low == 0:
            tiers[label] = sum(1 for v in values if 0 < v < high)
        else:
            tiers[label] = sum(1 for v in values if low <= v < high)
    return tiers


def _giving_summary(frame, cols, total):
    lifetime = numeric_values(column(frame, cols["lifetime_giving"]))
    last_gifts = [v for v in numeric_values(column(frame, cols["last_gift"])) if v > 0]
    return GivingSummary(
        lifetime_total=sum(lifetime),
        lifetime_mean=mean(lifetime),
        lifetime_median=median(lifetime),
        lifetime_max=max(lifetime + [0]),
        last_gift_mean=mean(last_gifts),
        last_gift_median=median(last_gifts),
        donors_count=len(last_gifts),
        non_donors=total - len(last_gifts),
        tiers=giving_tier_counts(lifetime),
    )


def _fiscal_year_giving(frame):
    rows = []
    for col in frame.columns:
        match = ANNUAL_FUND_PATTERN.match(str(col).strip())
        if match:
            amount = float(to_numeric(frame[col]).fillna(0).sum())
            rows.append(FiscalYearGiving(year=f"FY{match.group(1)}", amount=round_half_up(amount)))
    return rows


def _filled_counts(frame, col):
    values = column(frame, col)
    return count_by(values[non_blank(values)])


def analyze_donors(rows):
    """Compute DonorStats from donor/CRM rows. The input rows are not modified."""
    frame = frame_from_rows(rows)
    total = len(frame)
    cols = ColumnResolver(frame.columns).resolve(DONOR_COLUMNS)
    logger.debug(f"Donor columns: {cols}")

    years = class_years(column(frame, cols["class_year"]))
    class_year_counts = count_by(year_label(y) for y in years)

    states = count_by(column(frame, cols["state"]))
    ohio_key = next((k for k in states if k in OHIO_KEYS), None)
    ohio_count = states.get(ohio_key, 0) if ohio_key else 0

    greek_values = column(frame, cols["greek"])
    greek_values = greek_values[non_blank(greek_values)]

    majors = column(frame, cols["major"])
    majors = majors[(majors != "") & (majors != NO_MAJOR)]

    eng_scores = numeric_values(column(frame, cols["eng_score"]))

    summary = DonorSummary(
        total=total,
        constituency=count_by(column(frame, cols["constituency"])),
        class_year_counts=class_year_counts,
        class_decades=count_by(decade_of(y) for y in years),
        class_year_top=sort_desc(class_year_counts)[:CLASS_YEAR_TOP_N],
        states=states,
        unique_states=len(states),
        ohio_count=ohio_count,
        ohio_pct=percent(ohio_count, total),
        greek_total=len(greek_values),
        greek_none=total - len(greek_values),
        greek=count_by(greek_values),
        majors=count_by(majors),
        giving=_giving_summary(frame, cols, total),
        fy_giving=_fiscal_year_giving(frame),
        wealth_estimate=_filled_counts(frame, cols["wealth_estimate"]),
        gift_capacity=_filled_counts(frame, cols["gift_capacity"]),
        eng_score_mean=round_half_up(mean(eng_scores), 1),
        eng_score_median=median(eng_scores),
        employers=_filled_counts(frame, cols["employer"]),
        positions=_filled_counts(frame, cols["position"]),
        spouse_count=int(non_blank(column(frame, cols["spouse_name"])).sum()),
        spouse_alumni=int(non_blank(column(frame, cols["spouse_class_year"])).sum()),
    )
    identity = build_identity_sets(frame, cols["name"], cols["email"], cols["id"])

    logger.info(
        f"Donor analysis: {total} records, {summary.giving.donors_count} donors, "
        f"${summary.giving.lifetime_total:,.0f} lifetime giving"
    )
    return DonorStats(summary=summary, identity=identity)
