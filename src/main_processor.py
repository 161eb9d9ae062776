"""
Main analysis entry point: file buffers in, dashboard payload out.
"""
import logging
from pathlib import Path

from cross_analysis import DEFAULT_FUZZY_THRESHOLD, TOP_STATES, cross_analyze
from donor_analysis import analyze_donors
from insights import generate_insights
from registration_analysis import analyze_registrations
from schema_detection import parse_and_detect_files, parse_single_file

# Setup logging
logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------

EVENT_TYPES = ["homecoming", "reunion", "near_you"]
DEFAULT_EVENT_TYPE = "homecoming"

INPUT_SUFFIXES = [".csv", ".xlsx", ".xls"]


def resolve_event_type(event_type):
    """Passthrough label for the report; unknown values fall back to the default."""
    value = str(event_type or DEFAULT_EVENT_TYPE).strip().lower()
    return value if value in EVENT_TYPES else DEFAULT_EVENT_TYPE


# ---------------------------------------------------------
# MAIN ANALYSIS
# ---------------------------------------------------------

def analyze(buffer1, buffer2=None, config=None):
    """
    Run the full pipeline over one or two uploaded files.

    Args:
        buffer1: bytes of the first upload (the registration export in single-file mode)
        buffer2: optional bytes of the second upload
        config: Optional dict with settings like:
            - event_type: str (default 'homecoming')
            - fuzzy_threshold: int (default 90)
            - top_states: int (default 12)

    Returns:
        dict with hasRE, eventType, stats2024 (donor), stats2025 (registration),
        cross, insights and warnings. Identity sets never leave this function.

    Raises:
        EmptyFileError, FormatMismatchError: problems the uploader can fix
    """
    if config is None:
        config = {}

    cross_config = {
        'fuzzy_threshold': config.get('fuzzy_threshold', DEFAULT_FUZZY_THRESHOLD),
        'top_states': config.get('top_states', TOP_STATES),
    }

    if buffer2 is not None:
        roles = parse_and_detect_files(buffer1, buffer2)
    else:
        roles = parse_single_file(buffer1)

    donor_stats = analyze_donors(roles.donor_rows)
    registration_stats = analyze_registrations(roles.registration_rows)
    cross = cross_analyze(donor_stats, registration_stats, cross_config)
    insights = generate_insights(donor_stats, registration_stats, cross)

    return {
        'eventType': resolve_event_type(config.get('event_type')),
        'hasRE': len(roles.donor_rows) > 0,
        'stats2024': donor_stats.to_external(),
        'stats2025': registration_stats.to_external(),
        'cross': cross.to_external(),
        'insights': [i.to_external() for i in insights],
        'warnings': list(roles.warnings),
    }


def find_input_files(input_dir):
    """First two CSV/Excel files in input_dir, sorted by name."""
    files = sorted(
        p for p in Path(input_dir).glob("*")
        if p.is_file() and p.suffix.lower() in INPUT_SUFFIXES
    )
    if not files:
        raise FileNotFoundError(f"No CSV/XLSX files found in {input_dir}")
    if len(files) > 2:
        logger.warning(f"Found {len(files)} files in {input_dir}; using {files[0].name} and {files[1].name}")
    return files[:2]


def analyze_files(file1, file2=None, config=None):
    """Read files from disk and run analyze()."""
    paths = [Path(file1)] + ([Path(file2)] if file2 is not None else [])
    for path in paths:
        logger.info(f"Loading {path.name} ...")

    buffer1 = paths[0].read_bytes()
    buffer2 = paths[1].read_bytes() if len(paths) > 1 else None
    return analyze(buffer1, buffer2, config)
