"""
Reporting module: turns an analysis result into tables and writes report files.
"""
import json
import logging
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)

PRIORITY_LABELS = {
    'High': '🔴 High',
    'Medium': '🟡 Medium',
    'Low': '🟢 Low',
}

OUTPUT_FORMATS = ['xlsx', 'csv', 'markdown', 'html', 'json']


def _counts_table(counts, key_label, value_label='Count'):
    rows = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return pd.DataFrame(rows, columns=[key_label, value_label])


def build_summary(result):
    """Headline metrics as a two-column Metric/Value table."""
    reg = result['stats2025']
    cross = result['cross']
    rows = [
        ('Event type', result.get('eventType', '')),
        ('Total registrants', reg['total']),
        ('Unique registrations', reg['uniqueRegistrations']),
        ('Primary guests', reg['primaryGuests']),
        ('Accompanying guests', reg['accompanyingGuests']),
        ('Successful registrations', reg['successful']),
        ('Total alumni', reg['totalAlumni']),
        ('First-time attendees', reg['firstTimers']),
        ('Checked in', reg['checkedIn']),
        ('Ohio % (registration)', reg['ohioPct']),
    ]
    if result.get('hasRE'):
        donor = result['stats2024']
        giving = donor['giving']
        rows += [
            ('Donor CRM records', donor['total']),
            ('Lifetime giving total', round(giving['lifetimeTotal'], 2)),
            ('Lifetime giving median', giving['lifetimeMedian']),
            ('Donors (last gift > 0)', giving['donorsCount']),
            ('Non-donors', giving['nonDonors']),
            ('Matched by email', cross['matchByEmail']['matched']),
            ('Matched by constituent ID', cross['matchByConstituentId']['matched']),
            ('Registrants matched (email or ID)', cross['matchedRegistrants']),
            ('Registrants without CRM match', cross['gapRegistrationOnlyCount']),
            ('CRM emails without registration', cross['gapDonorOnlyCount']),
        ]
    return pd.DataFrame(rows, columns=['Metric', 'Value'])


def build_report_tables(result):
    """
    Named tables for a report, in display order.

    Donor-only tables (giving, Greek, majors) are included only when a donor
    CRM export was part of the analysis.
    """
    reg = result['stats2025']
    cross = result['cross']
    tables = {'Summary': build_summary(result)}

    if result.get('hasRE'):
        tables['Constituency'] = pd.DataFrame(
            [(s['label'], s['donor'], s['registration']) for s in cross['constituencyShifts']],
            columns=['Category', 'Donor CRM', 'Registration'],
        )
        tables['Geography'] = pd.DataFrame(
            [(g['state'], g['donor'], g['registration']) for g in cross['geographyComparison']],
            columns=['State', 'Donor CRM', 'Registration'],
        )
    else:
        tables['Constituency'] = _counts_table(reg['constituency'], 'Affiliation')
        tables['Geography'] = _counts_table(reg['states'], 'State')

    tables['Sub-Events'] = pd.DataFrame(
        [(e['name'], e['category'], e['attendingCount']) for e in reg['subEvents']],
        columns=['Event', 'Category', 'Attending'],
    )
    tables['Class Decades'] = pd.DataFrame(
        [(d['decade'], d['donor'], d['registration']) for d in cross['classDecades']],
        columns=['Decade', 'Donor CRM', 'Registration'],
    )

    if result.get('hasRE'):
        donor = result['stats2024']
        tables['Giving by FY'] = pd.DataFrame(
            [(fy['year'], fy['amount']) for fy in donor['fyGiving']],
            columns=['Fiscal Year', 'Amount'],
        )
        tables['Giving Tiers'] = pd.DataFrame(
            list(donor['giving']['tiers'].items()), columns=['Tier', 'Count']
        )
        tables['Greek'] = _counts_table(donor['greek'], 'Affiliation')
        tables['Majors'] = _counts_table(donor['majors'], 'Major')

    insights = pd.DataFrame(result['insights'], columns=['priority', 'title', 'body'])
    insights['priority'] = insights['priority'].map(lambda p: PRIORITY_LABELS.get(p, p))
    tables['Insights'] = insights.rename(columns={'priority': 'Priority', 'title': 'Title', 'body': 'Detail'})
    return tables


def generate_report(result, output_dir, output_format='xlsx', basename=None):
    """
    Write the analysis report.

    Args:
        result: dict returned by main_processor.analyze
        output_dir: directory for the report (created if needed)
        output_format: 'xlsx', 'csv', 'markdown', 'html' or 'json'
        basename: file name without extension (default analytics-<event>-<date>)

    Returns:
        Path to generated report
    """
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format: {output_format}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    if basename is None:
        basename = f"analytics-{result.get('eventType', 'report')}-{pd.Timestamp.now().strftime('%Y-%m-%d')}"

    if output_format == 'json':
        output_path = output_dir / f"{basename}.json"
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        logger.info(f"Generated report: {output_path}")
        return output_path

    tables = build_report_tables(result)

    if output_format == 'xlsx':
        output_path = output_dir / f"{basename}.xlsx"
        with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
            for name, table in tables.items():
                table.to_excel(writer, sheet_name=name[:31], index=False)
    elif output_format == 'csv':
        output_path = output_dir / f"{basename}.csv"
        summary = tables['Summary']
        insights = tables['Insights'].rename(columns={'Title': 'Metric', 'Detail': 'Value'})
        combined = pd.concat([summary, insights[['Metric', 'Value']]], ignore_index=True)
        combined.to_csv(output_path, index=False, encoding='utf-8-sig')
    elif output_format == 'markdown':
        output_path = output_dir / f"{basename}.md"
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("# Event & Donor Analytics Report\n\n")
            f.write(f"Generated: {pd.Timestamp.now().strftime('%Y-%m-%d %H:%M')}\n\n")
            for warning in result.get('warnings', []):
                f.write(f"> ⚠️ {warning}\n\n")
            for name, table in tables.items():
                f.write(f"## {name}\n\n")
                f.write(table.to_markdown(index=False) if not table.empty else "_No data_")
                f.write("\n\n")
    else:
        output_path = output_dir / f"{basename}.html"
        sections = "".join(
            f"<h2>{name}</h2>\n{table.to_html(index=False, classes='table table-striped')}\n"
            for name, table in tables.items()
        )
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(
                "<!DOCTYPE html>\n<html>\n<head><meta charset=\"utf-8\">"
                "<title>Event & Donor Analytics Report</title></head>\n<body>\n"
                f"<h1>Event & Donor Analytics Report</h1>\n"
                f"<p>Generated: {pd.Timestamp.now().strftime('%Y-%m-%d %H:%M')}</p>\n"
                f"{sections}</body>\n</html>\n"
            )

    logger.info(f"Generated report: {output_path}")
    return output_path
