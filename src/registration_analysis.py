"""
Aggregate statistics over an event registration export.

Registration exports vary in column naming, so most fields are found by
partial header match (see REGISTRATION_COLUMNS). Sub-events are detected from
the data itself: any column mostly filled with Attending / Not Attending.
"""
import calendar
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from analysis_utils import (
    ColumnResolver,
    IdentitySets,
    MatchKey,
    build_identity_sets,
    class_years,
    column,
    count_by,
    decade_of,
    frame_from_rows,
    normalize_id,
    percent,
    sort_desc,
    to_serializable,
    year_label,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------

REGISTRATION_COLUMNS = {
    "registration_id": ("exact", "Registration ID"),
    "guest_type": ("exact", "Guest Type"),
    "status": ("exact", "Registration Status"),
    "rsvp": ("exact", "RSVP"),
    "registration_date": ("exact", "Registration Date Time"),
    "check_in": ("exact", "Check-In"),
    "state": ("exact_last", "State"),
    "first_time": ("partial", "first time"),
    "affiliation": ("partial", "affiliations"),
    "class_year": ("partial", "class year, n/a"),
    "discount_code": ("partial", "discount code"),
    "dietary": ("partial", "dietary"),
    "name": ("partial", "guest full name"),
    "email": ("partial", ("guest email", "email")),
    "constituent_id": ("partial", "constituent id"),
}

ATTENDING = "Attending"
NOT_ATTENDING = "Not Attending"
DISCOUNT_PLACEHOLDER = "Discount Code Applied"
DIETARY_NO_VALUES = {"no", "none", "n/a", "na", "na/a", "nope", "no.", ""}
CLASS_YEAR_TOP_N = 15

# Ordered phrase substitutions applied to long sub-event names
SUB_EVENT_SHORTENINGS = [
    ("2015-2025 Young Alumni - ", "YA - "),
    (" Reception and Lunch", ""),
    (" and Affinity Huddles", ""),
    (" Induction Ceremony", ""),
    (" and Information Fair", ""),
    (" Sisterhood event and Open House", " Sisterhood"),
    (" Sisterhood event", " Sisterhood"),
    (" Service Project", " Service"),
    (" Saturday Program", ""),
    (" - Invite Only", ""),
    ("Battling Bishops Tailgate", "Tailgate & Huddles"),
    (" Meet and Reception", ""),
    ("Women's Volleyball game and Celebration of '94 and '96 teams", "Volleyball Reunion"),
    ("David Hamilton Smith Sorority & Fraternity Reception and Awards", "Sorority & Frat Awards"),
    (" Reception at the Ross Art Museum", " @ Ross"),
]
SHORTEN_ABOVE = 35
TRUNCATE_ABOVE = 40

# First matching pattern wins
SUB_EVENT_CATEGORIES = [
    ("Greek", re.compile(r"kappa|delta|phi|sigma|alpha|sorority|fraternity|greek")),
    ("Athletics", re.compile(r'swim|soccer|volleyball|captain|hall of fame|"w"|association')),
    ("Academic", re.compile(r"pints|observatory|performing|prof")),
    ("Family", re.compile(r"family|mixer")),
    ("Invite-Only", re.compile(r"invite")),
]
DEFAULT_CATEGORY = "General"

REGISTRATION_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})")


# ---------------------------------------------------------
# RESULT TYPES
# ---------------------------------------------------------

@dataclass(frozen=True)
class SubEvent:
    name: str
    full_name: str
    attending_count: int
    category: str


@dataclass(frozen=True)
class RegistrationSummary:
    """The externally visible part of registration statistics."""
    total: int = 0
    unique_registrations: int = 0
    primary_guests: int = 0
    accompanying_guests: int = 0
    successful: int = 0
    pending: int = 0
    cancelled: int = 0
    rsvp_yes: int = 0
    rsvp_no: int = 0
    first_timers: int = 0
    returning: int = 0
    constituency: Dict[str, int] = field(default_factory=dict)
    total_alumni: int = 0
    class_year_counts: Dict[str, int] = field(default_factory=dict)
    class_decades: Dict[str, int] = field(default_factory=dict)
    class_year_top: List[Tuple[str, int]] = field(default_factory=list)
    states: Dict[str, int] = field(default_factory=dict)
    unique_states: int = 0
    ohio_count: int = 0
    ohio_pct: float = 0
    sub_events: List[SubEvent] = field(default_factory=list)
    registration_months: Dict[str, int] = field(default_factory=dict)
    discount_codes: Dict[str, int] = field(default_factory=dict)
    dietary_count: int = 0
    checked_in: int = 0


@dataclass(frozen=True)
class RegistrationStats:
    summary: RegistrationSummary
    identity: IdentitySets
    match_keys: Tuple[MatchKey, ...] = ()

    def to_external(self):
        """Serializable dict without identity sets or match keys."""
        external = to_serializable(self.summary)
        external["namesCount"] = len(self.identity.names)
        return external


# ---------------------------------------------------------
# SUB-EVENTS
# ---------------------------------------------------------

def sub_event_category(col_name):
    lower = col_name.lower()
    for category, pattern in SUB_EVENT_CATEGORIES:
        if pattern.search(lower):
            return category
    return DEFAULT_CATEGORY


def shorten_event_name(col_name):
    short_name = col_name
    if len(short_name) > SHORTEN_ABOVE:
        for old, new in SUB_EVENT_SHORTENINGS:
            short_name = short_name.replace(old, new, 1)
        if len(short_name) > TRUNCATE_ABOVE:
            short_name = short_name[:37] + "..."
    return short_name


def detect_sub_events(frame):
    """Columns where Attending + Not Attending cover more than half the rows."""
    total = len(frame)
    sub_events = []
    for col in frame.columns:
        values = frame[col]
        values = values[values != ""]
        attending = int((values == ATTENDING).sum())
        not_attending = int((values == NOT_ATTENDING).sum())
        if attending + not_attending > total * 0.5 and attending > 0:
            sub_events.append(SubEvent(
                name=shorten_event_name(str(col)),
                full_name=str(col),
                attending_count=attending,
                category=sub_event_category(str(col)),
            ))
    return sorted(sub_events, key=lambda e: e.attending_count, reverse=True)


# ---------------------------------------------------------
# HELPERS
# ---------------------------------------------------------

def registration_month_counts(values):
    """Bucket 'YYYY-MM...' strings into 'Month YYYY' labels; others are skipped."""
    months = {}
    for value in values:
        match = REGISTRATION_MONTH_PATTERN.match(str(value or ""))
        if not match:
            continue
        month = int(match.group(2))
        if not 1 <= month <= 12:
            continue
        label = f"{calendar.month_name[month]} {match.group(1)}"
        months[label] = months.get(label, 0) + 1
    return months


def _equals_count(frame, col, expected):
    if col is None:
        return 0
    return int((frame[col] == expected).sum())


def _state_summary(frame, state_col):
    if state_col is None:
        return {}, 0, 0
    states = count_by(frame[state_col])
    total_state_count = sum(states.values())
    ohio_key = next((k for k in states if "ohio" in k.lower()), None)
    ohio_count = states[ohio_key] if ohio_key else 0
    return states, ohio_count, percent(ohio_count, total_state_count)


def _build_match_keys(frame, cols):
    emails = column(frame, cols["email"])
    ids = column(frame, cols["constituent_id"])
    affiliations = column(frame, cols["affiliation"])
    return tuple(
        MatchKey(
            email=str(email or "").strip().lower(),
            constituent_id=normalize_id(cid),
            affiliation=aff or "Other",
        )
        for email, cid, aff in zip(emails, ids, affiliations)
    )


# ---------------------------------------------------------
# AGGREGATION
# ---------------------------------------------------------

def analyze_registrations(rows):
    """Compute RegistrationStats from registration rows. The input rows are not modified."""
    frame = frame_from_rows(rows)
    total = len(frame)
    cols = ColumnResolver(frame.columns).resolve(REGISTRATION_COLUMNS)
    logger.debug(f"Registration columns: {cols}")

    statuses = count_by(column(frame, cols["status"]))

    affiliations = column(frame, cols["affiliation"])
    total_alumni = int(affiliations.astype(str).str.lower().str.contains("alumni", regex=False).sum()) \
        if cols["affiliation"] else 0

    years = class_years(column(frame, cols["class_year"])) if cols["class_year"] else []
    class_year_counts = count_by(year_label(y) for y in years)

    states, ohio_count, ohio_pct = _state_summary(frame, cols["state"])

    discounts = column(frame, cols["discount_code"])
    discounts = discounts[(discounts != "") & (discounts != DISCOUNT_PLACEHOLDER)]

    dietary = column(frame, cols["dietary"])
    dietary_count = int((~dietary.astype(str).str.strip().str.lower().isin(DIETARY_NO_VALUES)).sum()) \
        if cols["dietary"] else 0

    summary = RegistrationSummary(
        total=total,
        unique_registrations=len(set(column(frame, cols["registration_id"])) - {""}),
        primary_guests=_equals_count(frame, cols["guest_type"], "Primary Guest"),
        accompanying_guests=_equals_count(frame, cols["guest_type"], "Accompanying Guest"),
        successful=statuses.get("Registration Successful", 0),
        pending=statuses.get("Pending Payment", 0),
        cancelled=statuses.get("Registration Cancelled", 0),
        rsvp_yes=_equals_count(frame, cols["rsvp"], "Yes"),
        rsvp_no=_equals_count(frame, cols["rsvp"], "No"),
        first_timers=_equals_count(frame, cols["first_time"], "Yes"),
        returning=_equals_count(frame, cols["first_time"], "No"),
        constituency=count_by(affiliations),
        total_alumni=total_alumni,
        class_year_counts=class_year_counts,
        class_decades=count_by(decade_of(y) for y in years),
        class_year_top=sort_desc(class_year_counts)[:CLASS_YEAR_TOP_N],
        states=states,
        unique_states=len(states),
        ohio_count=ohio_count,
        ohio_pct=ohio_pct,
        sub_events=detect_sub_events(frame),
        registration_months=registration_month_counts(column(frame, cols["registration_date"])),
        discount_codes=count_by(discounts),
        dietary_count=dietary_count,
        checked_in=_equals_count(frame, cols["check_in"], "Yes"),
    )
    identity = build_identity_sets(frame, cols["name"], cols["email"], cols["constituent_id"])
    match_keys = _build_match_keys(frame, cols)

    logger.info(
        f"Registration analysis: {total} guests, {summary.unique_registrations} registrations, "
        f"{len(summary.sub_events)} sub-events"
    )
    return RegistrationStats(summary=summary, identity=identity, match_keys=match_keys)
