#!/usr/bin/env python3
"""
Travel Email Analyzer - Main Runner

Usage:
    python3 run.py mails/                 # Analyze every .eml file in a folder
    python3 run.py a.eml b.eml            # Analyze specific files
    python3 run.py mails/ --no-context    # Skip sender/attachment reweighting
    python3 run.py mails/ --config my.json
    python3 run.py mails/ --verbose       # Debug logging
"""

import logging
import sys
from dataclasses import replace
from pathlib import Path

from tripmail.airports import get_airport_display
from tripmail.config import load_config
from tripmail.email_handler import load_eml_directory, load_eml_file
from tripmail.patterns import build_registry
from tripmail.pipeline import analyze_travel_emails, build_travel_periods, suggest_round_trips
from tripmail.validation import data_completeness

HELP_TEXT = """
Travel Email Analyzer

Usage:
    python3 run.py <folder or .eml files>   Analyze emails
    python3 run.py ... --no-context         Skip context reweighting
    python3 run.py ... --config PATH        Use a specific config.json
    python3 run.py ... --verbose            Show debug logging
    python3 run.py --help                   Show this help
"""


def _parse_args(args):
    """Split argv into (paths, options dict). Returns None on a usage error."""
    options = {"no_context": False, "verbose": False, "config": None}
    paths = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--no-context":
            options["no_context"] = True
        elif arg in ("--verbose", "-v"):
            options["verbose"] = True
        elif arg == "--config":
            if i + 1 >= len(args):
                print("Error: --config needs a file path")
                return None
            options["config"] = args[i + 1]
            i += 1
        elif arg.startswith("-"):
            print(f"Error: unknown option {arg}")
            return None
        else:
            paths.append(Path(arg))
        i += 1
    return paths, options


def _load_emails(paths):
    emails = []
    for path in paths:
        if path.is_dir():
            emails.extend(load_eml_directory(path))
        elif path.exists():
            emails.append(load_eml_file(path))
        else:
            print(f"Warning: {path} not found, skipping")
    return emails


def _print_records(records, airports):
    print(f"\n=== {len(records)} travel record(s) for review ===")
    for record in records:
        category = record.category.value if record.category else "unknown"
        departure = get_airport_display(record.departure_airport or '?', airports)
        arrival = get_airport_display(record.arrival_airport or '?', airports)
        route = f"{departure} -> {arrival}"
        print(f"\n  [{record.confidence:.2f}] {record.subject}")
        print(f"      Type: {category}   Completeness: {data_completeness(record):.0%}")
        if record.flight_number:
            print(f"      Flight: {record.flight_number}   Route: {route}")
        if record.departure_date:
            dates = record.departure_date + (f" to {record.return_date}" if record.return_date else "")
            print(f"      Dates: {dates}")
        if record.booking_reference:
            print(f"      Booking: {record.booking_reference}")
        if record.hotel_name:
            print(f"      Hotel: {record.hotel_name}")
        if record.merge_count:
            print(f"      Merged from {record.merge_count + 1} emails")


def _print_periods(periods, suggestions):
    print(f"\n=== {len(periods)} travel period(s) if all records are accepted ===")
    for period in periods:
        print(f"  {period.entry_date}  {period.country_name} ({period.country_code})  {period.notes}")

    if suggestions:
        print(f"\n=== {len(suggestions)} round-trip suggestion(s) ===")
        for suggestion in suggestions:
            merged = suggestion.merged
            print(f"  {suggestion.suggestion_text}")
            print(f"      {merged.entry_date} - {merged.exit_date}  {merged.notes}")


def run(paths, config_file=None, apply_context=True):
    config = load_config(config_file)
    if not apply_context:
        config = replace(config, apply_context=False)
    registry = build_registry(config)

    emails = _load_emails(paths)
    if not emails:
        print("No emails to analyze.")
        return 1

    print(f"Analyzing {len(emails)} email(s)...")
    records = analyze_travel_emails(emails, registry=registry, config=config)
    _print_records(records, registry.airports)

    periods = build_travel_periods(records, registry=registry)
    suggestions = suggest_round_trips(periods, config=config)
    _print_periods(periods, suggestions)
    return 0


def main():
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        print(HELP_TEXT)
        return 0

    parsed = _parse_args(args)
    if parsed is None:
        print(HELP_TEXT)
        return 2
    paths, options = parsed

    logging.basicConfig(
        level=logging.DEBUG if options["verbose"] else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return run(paths, config_file=options["config"], apply_context=not options["no_context"])


if __name__ == "__main__":
    sys.exit(main())
