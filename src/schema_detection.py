"""
Header-based detection of donor/CRM exports vs. event registration exports,
and assignment of the uploaded files to those two roles.
"""
import logging
from collections import namedtuple

from analysis_errors import FormatMismatchError
from file_parsing import load_rows, normalize_headers

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# SIGNAL TABLES
# ---------------------------------------------------------

# (signal name, predicate over a lower-cased, trimmed header)
DONOR_SIGNALS = [
    ("lt giving", lambda c: "lt giving" in c),
    ("lifetime giving", lambda c: "lifetime giving" in c),
    ("constituency code", lambda c: "constituency code" in c),
    ("constituency", lambda c: "constituency" in c),
    ("cl yr", lambda c: c == "cl yr"),
    ("class year", lambda c: "class year" in c and "n/a" not in c),
    ("internal gift capacity", lambda c: "internal gift capacity" in c),
    ("we range", lambda c: "we range" in c),
    ("wealth engine", lambda c: "wealth engine" in c),
    ("last gift amount", lambda c: "last gift amount" in c),
    ("annual fund", lambda c: "annual fund" in c),
]

REGISTRATION_SIGNALS = [
    ("registration id", lambda c: "registration id" in c),
    ("guest type", lambda c: "guest type" in c),
    ("guest full name", lambda c: "guest full name" in c),
    ("guest first name", lambda c: "guest first name" in c),
    ("guest last name", lambda c: "guest last name" in c),
    ("registration status", lambda c: "registration status" in c),
    ("registration date", lambda c: "registration date" in c),
]

DONOR_HINT = "Donor CRM exports need: LT Giving, Constituency Code, CL YR, or Internal Gift Capacity."
REGISTRATION_HINT = "Registration exports need: Registration ID, Guest Type, Guest Full Name, or Registration Status."

Classification = namedtuple("Classification", ["is_donor", "is_registration", "donor_signals", "registration_signals"])

FileRoles = namedtuple("FileRoles", ["donor_rows", "registration_rows", "warnings"])


def _matched_signals(signals, cols):
    return [name for name, test in signals if any(test(c) for c in cols)]


def classify_headers(headers):
    """Score a header list as donor-like and/or registration-like."""
    cols = [str(h or "").lower().strip() for h in headers]
    donor_hits = _matched_signals(DONOR_SIGNALS, cols)
    registration_hits = _matched_signals(REGISTRATION_SIGNALS, cols)
    logger.debug(f"Signals: donor={donor_hits} registration={registration_hits}")
    return Classification(
        is_donor=bool(donor_hits),
        is_registration=bool(registration_hits),
        donor_signals=donor_hits,
        registration_signals=registration_hits,
    )


def headers_of(rows):
    return list(rows[0].keys()) if rows else []


def _sample(headers, limit, ellipsis_when_truncated=False):
    sample = ", ".join(headers[:limit])
    if ellipsis_when_truncated and len(headers) > limit:
        sample += "..."
    return sample


def _unrecognized_file_error(label, headers):
    return FormatMismatchError(
        f"{label} does not match expected format. "
        f"Found columns: {_sample(headers, 8, ellipsis_when_truncated=True)}. "
        f"{DONOR_HINT} {REGISTRATION_HINT}",
        headers,
    )


# ---------------------------------------------------------
# ROLE ASSIGNMENT
# ---------------------------------------------------------

def assign_roles(rows1, rows2):
    """
    Decide which of two normalized row sets is the donor export.

    Returns FileRoles(donor_rows, registration_rows, warnings).
    """
    headers1, headers2 = headers_of(rows1), headers_of(rows2)
    type1, type2 = classify_headers(headers1), classify_headers(headers2)
    unknown1 = not type1.is_donor and not type1.is_registration
    unknown2 = not type2.is_donor and not type2.is_registration

    if unknown1 and unknown2:
        raise FormatMismatchError(
            f"Neither file matches the expected format. "
            f"File 1 columns: {_sample(headers1, 6)}... File 2 columns: {_sample(headers2, 6)}... "
            f"{DONOR_HINT} {REGISTRATION_HINT}",
            headers1 + headers2,
        )
    if unknown1:
        raise _unrecognized_file_error("File 1", headers1)
    if unknown2:
        raise _unrecognized_file_error("File 2", headers2)

    first_is_donor = type1.is_donor and type2.is_registration
    first_is_registration = type1.is_registration and type2.is_donor

    if first_is_registration and not first_is_donor:
        logger.info("File 1 classified as registration, File 2 as donor CRM")
        return FileRoles(rows2, rows1, [])
    if first_is_donor and not first_is_registration:
        logger.info("File 1 classified as donor CRM, File 2 as registration")
        return FileRoles(rows1, rows2, [])

    warning = (
        "Could not tell the files apart from their headers; "
        "treating File 1 as the donor CRM export and File 2 as the registration export."
    )
    logger.warning(warning)
    return FileRoles(rows1, rows2, [warning])


def parse_and_detect_files(buffer1, buffer2):
    """Load both buffers, collapse two-row headers, and assign roles."""
    rows1 = normalize_headers(load_rows(buffer1, "File 1"))
    rows2 = normalize_headers(load_rows(buffer2, "File 2"))
    return assign_roles(rows1, rows2)


def parse_single_file(buffer):
    """Single-upload mode: the file must be a registration export."""
    rows = normalize_headers(load_rows(buffer, "File"))
    headers = headers_of(rows)
    result = classify_headers(headers)
    if not result.is_donor and not result.is_registration:
        raise _unrecognized_file_error("File", headers)
    if not result.is_registration:
        raise FormatMismatchError(
            "Single-file mode requires registration data. "
            "This file looks like a donor CRM export: upload it together with a "
            "registration export for full analysis.",
            headers,
        )
    logger.info("Single file classified as registration")
    return FileRoles([], rows, [])
