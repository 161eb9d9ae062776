#!/usr/bin/env python3
"""
Main entry point for the Event & Donor Analytics tool.

Usage:
    python app.py                                  # Analyze the files in input/ (default)
    python app.py analyze reg.csv crm.xlsx         # Analyze two exports
    python app.py analyze reg.csv                  # Registration-only analysis
    python app.py detect reg.csv crm.xlsx          # Show how each file is classified
    python app.py --output-format=markdown         # Write a Markdown report
    python app.py --event-type=reunion             # Label the report
"""
import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from analysis_errors import AnalysisError, is_user_error
from file_parsing import load_rows, normalize_headers
from main_processor import EVENT_TYPES, analyze_files, find_input_files
from reporting import OUTPUT_FORMATS, generate_report
from schema_detection import classify_headers, headers_of


def setup_logging(verbose=False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler('app.log')
        ]
    )
    return logging.getLogger(__name__)


def _input_paths(args, project_root):
    if args.files:
        return [Path(f) for f in args.files]
    return find_input_files(project_root / "input")


def detect_command(args, project_root, logger):
    """Print the classification signals for each file."""
    try:
        paths = _input_paths(args, project_root)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    for path in paths:
        try:
            rows = normalize_headers(load_rows(path.read_bytes(), path.name))
        except AnalysisError as e:
            logger.error(f"{path.name}: {e}")
            continue
        result = classify_headers(headers_of(rows))
        role = "donor CRM" if result.is_donor else ""
        if result.is_registration:
            role = f"{role} + registration" if role else "registration"
        logger.info(f"{path.name}: {role or 'unrecognized'} ({len(rows)} rows)")
        logger.info(f"  donor signals: {', '.join(result.donor_signals) or '-'}")
        logger.info(f"  registration signals: {', '.join(result.registration_signals) or '-'}")
    return 0


def analyze_command(args, project_root, logger):
    """Analyze one or two exports and write the report."""
    logger.info("Starting analysis...")

    config = {
        'event_type': args.event_type,
        'fuzzy_threshold': args.fuzzy_threshold,
    }

    try:
        paths = _input_paths(args, project_root)
        if len(paths) > 2:
            logger.error("At most two files can be analyzed together")
            return 2
        result = analyze_files(paths[0], paths[1] if len(paths) > 1 else None, config)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except AnalysisError as e:
        if is_user_error(e):
            logger.error(str(e))
            return 2
        logger.error(f"Analysis failed: {e}", exc_info=True)
        return 1
    except Exception as e:
        logger.error(f"Analysis failed: {e}", exc_info=True)
        return 1

    for warning in result['warnings']:
        logger.warning(warning)

    reg = result['stats2025']
    logger.info("Analysis complete!")
    logger.info(f"  Registrants: {reg['total']}")
    logger.info(f"  Sub-events: {len(reg['subEvents'])}")
    if result['hasRE']:
        logger.info(f"  Donor CRM records: {result['stats2024']['total']}")
        logger.info(f"  Registrants matched: {result['cross']['matchedRegistrants']}")
    for insight in result['insights']:
        logger.info(f"  [{insight['priority']}] {insight['title']}")

    report_path = generate_report(result, project_root / "output", args.output_format)
    logger.info(f"  Report: {report_path}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description='Event & Donor Analytics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python app.py                                # Analyze files in input/
  python app.py analyze reg.csv crm.xlsx       # Analyze two exports
  python app.py detect reg.csv                 # Check file classification
  python app.py --output-format=json           # Write JSON instead of Excel
  python app.py --verbose                      # Enable debug logging
        """
    )

    parser.add_argument(
        'mode',
        nargs='?',
        default='analyze',
        choices=['analyze', 'detect'],
        help='Operation mode (default: analyze)'
    )

    parser.add_argument(
        'files',
        nargs='*',
        help='One registration export, or a registration and a donor CRM export (default: files in input/)'
    )

    parser.add_argument(
        '--event-type',
        choices=EVENT_TYPES,
        default='homecoming',
        help='Event label for the report (default: homecoming)'
    )

    parser.add_argument(
        '--output-format',
        choices=OUTPUT_FORMATS,
        default='xlsx',
        help='Report output format (default: xlsx)'
    )

    parser.add_argument(
        '--fuzzy-threshold',
        type=int,
        default=90,
        help='Fuzzy name matching threshold 0-100 (default: 90)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose/debug logging'
    )

    args = parser.parse_args()

    # Setup logging
    logger = setup_logging(args.verbose)

    # Get project root
    project_root = Path(__file__).parent

    logger.info(f"Starting in {args.mode} mode")

    # Route to appropriate command
    if args.mode == 'detect':
        return detect_command(args, project_root, logger)
    elif args.mode == 'analyze':
        return analyze_command(args, project_root, logger)
    else:
        logger.error(f"Unknown mode: {args.mode}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
