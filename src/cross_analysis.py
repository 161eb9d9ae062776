"""
Reconciliation of donor/CRM statistics with registration statistics.

The two systems share no primary key, so people are matched by normalized
email, by constituent ID, and (for retention) by name.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from analysis_utils import to_serializable
from name_matching import get_match_stats, match_names

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------

STATE_NAMES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "DC": "District of Columbia", "FL": "Florida", "GA": "Georgia", "HI": "Hawaii",
    "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine",
    "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska",
    "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico",
    "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island",
    "SC": "South Carolina", "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas",
    "UT": "Utah", "VT": "Vermont", "VA": "Virginia", "WA": "Washington",
    "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
}

CONSTITUENCY_CATEGORIES = ["Alumni", "Parent", "Student", "Friend", "Faculty/Staff"]

# (full band label as exported, short display label)
WEALTH_BANDS = [
    ("$1-$2,499", "$1-2.5K"),
    ("$2,500-$4,999", "$2.5-5K"),
    ("$5,000-$9,999", "$5-10K"),
    ("$10,000-$14,999", "$10-15K"),
    ("$15,000-$24,999", "$15-25K"),
    ("$25,000-$49,999", "$25-50K"),
    ("$50,000-$99,999", "$50-100K"),
    ("$100,000-$249,999", "$100-250K"),
    ("$250,000-$499,999", "$250-500K"),
    ("$500,000-$999,999", "$500K-1M"),
    ("$1,000,000-$4,999,999", "$1-5M"),
    ("$5,000,000+", "$5M+"),
]

TOP_STATES = 12
DEFAULT_FUZZY_THRESHOLD = 90


# ---------------------------------------------------------
# RESULT TYPES
# ---------------------------------------------------------

@dataclass(frozen=True)
class MatchCounts:
    matched: int = 0
    donor_only: int = 0
    registration_only: int = 0


@dataclass(frozen=True)
class RetentionCounts(MatchCounts):
    fuzzy_matched: int = 0


@dataclass(frozen=True)
class ConstituencyShift:
    label: str
    donor: int
    registration: int


@dataclass(frozen=True)
class StateComparison:
    state: str
    donor: int
    registration: int


@dataclass(frozen=True)
class DecadeComparison:
    decade: str
    donor: int
    registration: int


@dataclass(frozen=True)
class WealthCapacity:
    range: str
    wealth_estimate: int
    gift_capacity: int


@dataclass(frozen=True)
class CrossStats:
    retention: RetentionCounts = field(default_factory=RetentionCounts)
    match_by_email: MatchCounts = field(default_factory=MatchCounts)
    match_by_constituent_id: MatchCounts = field(default_factory=MatchCounts)
    matched_registrants: int = 0
    gap_registration_only: Dict[str, int] = field(default_factory=dict)
    gap_registration_only_count: int = 0
    gap_donor_only_count: int = 0
    constituency_shifts: List[ConstituencyShift] = field(default_factory=list)
    geography_comparison: List[StateComparison] = field(default_factory=list)
    class_decades: List[DecadeComparison] = field(default_factory=list)
    wealth_capacity: List[WealthCapacity] = field(default_factory=list)

    def to_external(self):
        return to_serializable(self)


# ---------------------------------------------------------
# MATCHING
# ---------------------------------------------------------

def match_counts(donor_keys, registration_keys):
    matched = len(donor_keys & registration_keys)
    return MatchCounts(
        matched=matched,
        donor_only=len(donor_keys) - matched,
        registration_only=len(registration_keys) - matched,
    )


def _is_matched(key, donor_emails, donor_ids):
    return bool(key.email and key.email in donor_emails) or \
        bool(key.constituent_id and key.constituent_id in donor_ids)


def retention_counts(donor_names, registration_names, fuzzy_threshold=DEFAULT_FUZZY_THRESHOLD):
    """Exact name overlap plus fuzzy matches among the names left over."""
    exact = match_counts(donor_names, registration_names)
    fuzzy_matched = 0
    leftover_registration = registration_names - donor_names
    leftover_donor = donor_names - registration_names
    if leftover_registration and leftover_donor:
        by_type = match_names(leftover_registration, leftover_donor, fuzzy_threshold)
        fuzzy_matched = by_type["exact"] + by_type["word_match"] + by_type["fuzzy"]
        logger.debug(f"Fuzzy name matching: {by_type}, cache {get_match_stats()}")
    return RetentionCounts(
        matched=exact.matched,
        donor_only=exact.donor_only,
        registration_only=exact.registration_only,
        fuzzy_matched=fuzzy_matched,
    )


# ---------------------------------------------------------
# NORMALIZATION
# ---------------------------------------------------------

def registration_constituency_bucket(label):
    lower = label.lower()
    if "alumni" in lower:
        return "Alumni"
    if "parent" in lower and "past" not in lower:
        return "Parent"
    if "student" in lower:
        return "Student"
    if "friend" in lower:
        return "Friend"
    if "faculty" in lower or "staff" in lower:
        return "Faculty/Staff"
    return "Other"


def donor_constituency_bucket(label):
    if "Alumni" in label:
        return "Alumni"
    if label in ("Parent", "Student", "Friend", "Faculty/Staff"):
        return label
    return "Other"


def normalize_constituency(counts, bucket):
    normalized = {}
    for label, count in counts.items():
        key = bucket(label)
        normalized[key] = normalized.get(key, 0) + count
    return normalized


def normalize_state(state):
    """Full state name for a two-letter abbreviation; other values are trimmed."""
    if not isinstance(state, str) or not state.strip():
        return None
    s = state.strip()
    return STATE_NAMES.get(s.upper(), s)


def geography_comparison(donor_states, registration_states, top_n=TOP_STATES):
    registration_lookup = {}
    for state, count in registration_states.items():
        key = (normalize_state(state) or state).lower()
        registration_lookup[key] = registration_lookup.get(key, 0) + count

    ranked = sorted(donor_states.items(), key=lambda item: item[1], reverse=True)[:top_n]
    return [
        StateComparison(
            state=state,
            donor=count,
            registration=registration_lookup.get((normalize_state(state) or state).lower(), 0),
        )
        for state, count in ranked
    ]


def decade_comparison(donor_decades, registration_decades):
    decades = sorted(set(donor_decades) | set(registration_decades))
    return [
        DecadeComparison(
            decade=d,
            donor=donor_decades.get(d, 0),
            registration=registration_decades.get(d, 0),
        )
        for d in decades
    ]


def wealth_capacity_comparison(wealth_estimate, gift_capacity):
    rows = [
        WealthCapacity(
            range=short_label,
            wealth_estimate=wealth_estimate.get(band, 0),
            gift_capacity=gift_capacity.get(band, 0),
        )
        for band, short_label in WEALTH_BANDS
    ]
    return [r for r in rows if r.wealth_estimate > 0 or r.gift_capacity > 0]


# ---------------------------------------------------------
# CROSS ANALYSIS
# ---------------------------------------------------------

def cross_analyze(donor_stats, registration_stats, config=None):
    """
    Compare donor and registration statistics.

    Args:
        donor_stats: DonorStats (may describe zero rows in single-file mode)
        registration_stats: RegistrationStats
        config: Optional dict with settings like:
            - fuzzy_threshold: int (default 90)
            - top_states: int (default 12)
    """
    if config is None:
        config = {}

    fuzzy_threshold = config.get('fuzzy_threshold', DEFAULT_FUZZY_THRESHOLD)
    top_states = config.get('top_states', TOP_STATES)

    donor = donor_stats.summary
    registration = registration_stats.summary
    donor_ids = donor_stats.identity
    registration_ids = registration_stats.identity

    # Registrants matched by email OR constituent ID count once
    keys = registration_stats.match_keys
    unmatched = [
        k for k in keys
        if not _is_matched(k, donor_ids.emails, donor_ids.constituent_ids)
    ]
    gap_by_affiliation = {}
    for k in unmatched:
        affiliation = k.affiliation or "Other"
        gap_by_affiliation[affiliation] = gap_by_affiliation.get(affiliation, 0) + 1

    donor_shift = normalize_constituency(donor.constituency, donor_constituency_bucket)
    registration_shift = normalize_constituency(registration.constituency, registration_constituency_bucket)

    cross = CrossStats(
        retention=retention_counts(donor_ids.names, registration_ids.names, fuzzy_threshold),
        match_by_email=match_counts(donor_ids.emails, registration_ids.emails),
        match_by_constituent_id=match_counts(donor_ids.constituent_ids, registration_ids.constituent_ids),
        matched_registrants=len(keys) - len(unmatched),
        gap_registration_only=gap_by_affiliation,
        gap_registration_only_count=len(unmatched),
        gap_donor_only_count=len(donor_ids.emails - registration_ids.emails),
        constituency_shifts=[
            ConstituencyShift(
                label=cat,
                donor=donor_shift.get(cat, 0),
                registration=registration_shift.get(cat, 0),
            )
            for cat in CONSTITUENCY_CATEGORIES
        ],
        geography_comparison=geography_comparison(donor.states, registration.states, top_states),
        class_decades=decade_comparison(donor.class_decades, registration.class_decades),
        wealth_capacity=wealth_capacity_comparison(donor.wealth_estimate, donor.gift_capacity),
    )

    logger.info(
        f"Cross analysis: {cross.match_by_email.matched} matched by email, "
        f"{cross.match_by_constituent_id.matched} by constituent ID, "
        f"{cross.matched_registrants} registrants matched overall"
    )
    if cross.gap_registration_only_count:
        logger.info(f"{cross.gap_registration_only_count} registrants have no donor CRM match")
    return cross
