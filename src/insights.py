"""
Rule-based findings derived from donor, registration and cross statistics.

Each rule returns an Insight or None; rules run in display order and never raise
for missing data, they just stay silent.
"""
import logging
from dataclasses import dataclass

from analysis_utils import round_half_up, to_serializable

logger = logging.getLogger(__name__)

RED = '#e05252'
ORANGE = '#fb923c'
GREEN = '#4ade80'

OHIO_THRESHOLD = 60
NON_DONOR_THRESHOLD = 30
GREEK_SHARE = 0.3
LOW_MATCH_SHARE = 0.2
LARGE_GAP = 50
STRONG_CLASS_BEFORE = 2020


@dataclass(frozen=True)
class Insight:
    icon: str
    title: str
    body: str
    priority: str
    color: str

    def to_external(self):
        return to_serializable(self)


# ---------------------------------------------------------
# REGISTRATION-ONLY RULES
# ---------------------------------------------------------

def _registration_only_notice(donor, registration, cross):
    return Insight(
        icon='📋',
        title='Registration Data Only',
        body="No donor CRM export was uploaded. Giving, Greek affiliation, majors, and wealth "
             "data are unavailable. Upload a CRM constituent export to enable full analysis.",
        priority='High',
        color=ORANGE,
    )


def _top_event(donor, registration, cross):
    if not registration.sub_events:
        return None
    top = registration.sub_events[0]
    return Insight(
        icon='🎪',
        title=f"{top.name} Is the Top Event",
        body=f"With {top.attending_count} attendees. Plan capacity around anchor events.",
        priority='Medium',
        color=ORANGE,
    )


def _registration_ohio(donor, registration, cross):
    if registration.ohio_pct <= OHIO_THRESHOLD:
        return None
    return Insight(
        icon='🗺️',
        title=f"~{round_half_up(registration.ohio_pct)}% from Ohio",
        body="Geographic concentration in Ohio. Consider regional outreach for expansion.",
        priority='Low',
        color=GREEN,
    )


# ---------------------------------------------------------
# FULL RULE SET
# ---------------------------------------------------------

def _shift(cross, label):
    return next((s for s in cross.constituency_shifts if s.label == label), None)


def _parent_alumni_shift(donor, registration, cross):
    alumni, parent = _shift(cross, 'Alumni'), _shift(cross, 'Parent')
    if not alumni or not parent or alumni.registration >= alumni.donor:
        return None
    return Insight(
        icon='📈',
        title='Parents Outnumber Alumni in Registration',
        body=f"The donor CRM has {alumni.donor} alumni vs {parent.donor} parents. "
             f"In registration: {alumni.registration} alumni vs {parent.registration} parents. "
             "Parents may be over-represented in registration; consider alumni-specific outreach.",
        priority='High',
        color=RED,
    )


def _friend_growth(donor, registration, cross):
    friend = _shift(cross, 'Friend')
    if not friend or friend.donor <= 0 or friend.registration <= friend.donor:
        return None
    return Insight(
        icon='🌟',
        title='Friends Segment Notable in Registration',
        body=f'"Friend" category: {friend.donor} in the donor CRM, {friend.registration} in registration. '
             "Worth investigating who these friends are and whether they can be converted to donors.",
        priority='Medium',
        color=ORANGE,
    )


def _non_donors(donor, registration, cross):
    if donor.total <= 0:
        return None
    non_donor_pct = round_half_up(donor.giving.non_donors / donor.total * 100)
    if non_donor_pct <= NON_DONOR_THRESHOLD:
        return None
    return Insight(
        icon='💰',
        title=f"{non_donor_pct}% of Event Attendees Have Never Given",
        body=f"{donor.giving.non_donors} of {donor.total} constituents have no recorded gift. "
             "They are engaged enough to attend but have not been converted. Cross-reference with "
             "wealth estimates: some have significant capacity. This is the highest-ROI cultivation list.",
        priority='High',
        color=RED,
    )


def _strong_class_years(donor, registration, cross):
    def before_cutoff(pairs):
        return [y for y, _ in pairs if int(float(y)) < STRONG_CLASS_BEFORE]

    registration_years = set(before_cutoff(registration.class_year_top))
    common = [y for y in before_cutoff(donor.class_year_top) if y in registration_years]
    if not common:
        return None
    year = common[0]
    return Insight(
        icon='🎓',
        title=f"Class of {year} Shows Strong Representation",
        body=f"The class of '{year[2:]} appears in both the donor CRM and registration data. "
             "This cohort should be cultivated for major gifts and legacy planning.",
        priority='Medium',
        color=ORANGE,
    )


def _greek_share(donor, registration, cross):
    if donor.total <= 0 or donor.greek_total <= donor.total * GREEK_SHARE:
        return None
    return Insight(
        icon='🏛️',
        title='Greek Life Drives Significant Attendance',
        body=f"{round_half_up(donor.greek_total / donor.total * 100)}% of constituents had Greek "
             f"affiliations ({donor.greek_total} of {donor.total}). "
             "Greek reunion programming is a proven attendance driver.",
        priority='Low',
        color=GREEN,
    )


def _anchor_event(donor, registration, cross):
    if not registration.sub_events:
        return None
    top = registration.sub_events[0]
    return Insight(
        icon='🎪',
        title=f"{top.name} Is the Anchor Event",
        body=f"With {top.attending_count} attendees, it far outpaces other events. Most niche events "
             "draw 10-40 people. Plan capacity and budget around these anchor events.",
        priority='Medium',
        color=ORANGE,
    )


def _annual_fund_growth(donor, registration, cross):
    if len(donor.fy_giving) < 2:
        return None
    first = donor.fy_giving[0].amount
    last = donor.fy_giving[-1].amount
    if first <= 0 or last <= first:
        return None
    growth = round_half_up((last - first) / first * 100)
    return Insight(
        icon='📊',
        title=f"Annual Fund Giving Grew {growth}% Among Attendees",
        body=f"Annual Fund giving from event attendees grew from ${first / 1000:.0f}K to "
             f"${last / 1000:.0f}K over the tracked period. Events correlate with giving growth.",
        priority='High',
        color=RED,
    )


def _ohio_concentration(donor, registration, cross):
    if donor.ohio_pct <= OHIO_THRESHOLD and registration.ohio_pct <= OHIO_THRESHOLD:
        return None
    average = round_half_up((donor.ohio_pct + registration.ohio_pct) / 2)
    spread = max(donor.unique_states, registration.unique_states)
    return Insight(
        icon='🗺️',
        title=f"~{average}% Ohio: Geographic Expansion Opportunity",
        body=f"Ohio accounts for the vast majority of attendees. The remaining span {spread}+ states. "
             "Consider regional pre-event meetups or travel stipends.",
        priority='Low',
        color=GREEN,
    )


def _email_match_summary(donor, registration, cross):
    gap = cross.gap_registration_only_count
    if gap <= 0:
        return None
    matched = cross.match_by_email.matched
    return Insight(
        icon='🔗',
        title=f"{matched} Matched by Email · {gap} Need CRM Records",
        body=f"{matched} guests matched across registration and the donor CRM by email. "
             f"{gap} registered guests could not be matched; consider adding them to the CRM "
             "for complete constituent coverage.",
        priority='High' if gap > LARGE_GAP else 'Medium',
        color=RED if gap > LARGE_GAP else ORANGE,
    )


def _platform_mismatch(donor, registration, cross):
    return Insight(
        icon='⚠️',
        title='Data Platform Mismatch Limits Analysis',
        body="The two files come from different platforms and schemas. The donor CRM has giving data "
             "but no event details; the registration export has rich event data but no giving history. "
             "Matching by email and constituent ID enables cross-system analysis.",
        priority='High',
        color=RED,
    )


def _low_cross_match(donor, registration, cross):
    matched = cross.match_by_email.matched
    smaller = min(donor.total, registration.total)
    if smaller <= 0 or matched >= smaller * LOW_MATCH_SHARE:
        return None
    return Insight(
        icon='🔄',
        title=f"Low Cross-Source Match ({matched} by email)",
        body=f"Only {matched} people matched across the donor CRM and registration. Many appear in "
             "one system only. Email matching is most reliable; name matching can miss due to "
             "formatting differences.",
        priority='Medium',
        color=ORANGE,
    )


REGISTRATION_ONLY_RULES = [_registration_only_notice, _top_event, _registration_ohio]

INSIGHT_RULES = [
    _parent_alumni_shift,
    _friend_growth,
    _non_donors,
    _strong_class_years,
    _greek_share,
    _anchor_event,
    _annual_fund_growth,
    _ohio_concentration,
    _email_match_summary,
    _platform_mismatch,
    _low_cross_match,
]


def generate_insights(donor_stats, registration_stats, cross):
    """Apply the rule set in display order and return the Insights that fire."""
    donor = donor_stats.summary
    registration = registration_stats.summary
    rules = INSIGHT_RULES if donor.total > 0 else REGISTRATION_ONLY_RULES

    insights = []
    for rule in rules:
        insight = rule(donor, registration, cross)
        if insight is not None:
            insights.append(insight)

    logger.info(f"Generated {len(insights)} insights")
    return insights
