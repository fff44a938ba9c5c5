"""
Cross-field consistency checks for extracted travel records.

validate_consistency() is a pure check that only reports issues; the caller
decides whether to turn them into a confidence penalty with
apply_consistency_penalty().
"""

import logging
import re
from dataclasses import replace
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from .airlines import split_flight_number
from .airports import is_valid_airport
from .models import RECORD_FIELDS, ValidationResult
from .parser import normalize_date

logger = logging.getLogger(__name__)

BOOKING_REFERENCE_PATTERN = re.compile(r'^[A-Z0-9]{6,8}$')

PAST_WINDOW_DAYS = 30
FUTURE_WINDOW_YEARS = 2
PENALTY_PER_ISSUE = 0.1


def _to_date(value):
    """Parse a record date (normally already YYYY-MM-DD)."""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        normalized = normalize_date(value)
        return date.fromisoformat(normalized) if normalized else None


def is_valid_flight_number(flight_number, airline_codes):
    """Known airline prefix followed by a number between 1 and 9999."""
    parts = split_flight_number(flight_number, airline_codes)
    return parts is not None and 1 <= parts[1] <= 9999


def validate_consistency(record, registry, today=None,
                         past_window_days=PAST_WINDOW_DAYS,
                         future_window_years=FUTURE_WINDOW_YEARS):
    """Check a record's fields against each other and the registries.

    Args:
        record: ExtractedRecord to check
        registry: PatternRegistry (airline codes and airports)
        today: Reference date for the past/future windows (defaults to today)
        past_window_days: Departures older than this many days are flagged
        future_window_years: Departures further ahead than this are flagged

    Returns:
        ValidationResult listing one issue per violated rule
    """
    today = today or date.today()
    issues = []

    departure = _to_date(record.departure_date)
    return_date = _to_date(record.return_date)

    if departure and return_date and return_date <= departure:
        issues.append(f"Return date {record.return_date} is not after departure date {record.departure_date}")

    if departure:
        if departure < today - timedelta(days=past_window_days):
            issues.append(f"Departure date {record.departure_date} is more than {past_window_days} days in the past")
        if departure > today + relativedelta(years=future_window_years):
            issues.append(f"Departure date {record.departure_date} is more than {future_window_years} years in the future")

    if record.flight_number and not is_valid_flight_number(record.flight_number, registry.airline_codes):
        issues.append(f"Invalid flight number: {record.flight_number}")

    if record.departure_airport and not is_valid_airport(record.departure_airport, registry.airports):
        issues.append(f"Invalid departure airport code: {record.departure_airport}")
    if record.arrival_airport and not is_valid_airport(record.arrival_airport, registry.airports):
        issues.append(f"Invalid arrival airport code: {record.arrival_airport}")

    if record.departure_airport and record.departure_airport == record.arrival_airport:
        issues.append(f"Departure and arrival airport are both {record.departure_airport}")

    if record.booking_reference and not BOOKING_REFERENCE_PATTERN.match(record.booking_reference):
        issues.append(f"Invalid booking reference format: {record.booking_reference}")

    return ValidationResult(is_consistent=not issues, issues=tuple(issues))


def apply_consistency_penalty(record, result, penalty=PENALTY_PER_ISSUE):
    """Subtract `penalty` per issue from the record's confidence (floor 0).

    Returns:
        New ExtractedRecord, or the same record when there are no issues
    """
    if not result.issues:
        return record
    amount = penalty * len(result.issues)
    updates = {'confidence': max(0.0, record.confidence - amount)}
    if record.base_confidence is not None:
        updates['base_confidence'] = max(0.0, record.base_confidence - amount)
    logger.debug("Penalizing %s by %.2f: %s", record.email_id, amount, "; ".join(result.issues))
    return replace(record, **updates)


def data_completeness(record):
    """Share of the structured record fields that are filled (0.0 - 1.0)."""
    filled = sum(1 for name in RECORD_FIELDS if getattr(record, name))
    return filled / len(RECORD_FIELDS)


def sort_records(records):
    """Sort by confidence descending; more complete records win ties."""
    return tuple(sorted(records, key=lambda r: (-r.confidence, -data_completeness(r))))


def prioritize_records(records, registry, today=None, penalty=PENALTY_PER_ISSUE,
                       threshold=0.2, **window_options):
    """Validate, penalize, drop low-confidence records and sort the rest.

    Args:
        records: Iterable of ExtractedRecord
        registry: PatternRegistry
        today: Reference date for validation
        penalty: Confidence subtracted per consistency issue
        threshold: Records below this confidence after penalties are dropped
        **window_options: past_window_days / future_window_years overrides

    Returns:
        Tuple of ExtractedRecord, best first
    """
    kept = []
    for record in records:
        result = validate_consistency(record, registry, today, **window_options)
        penalized = apply_consistency_penalty(record, result, penalty)
        if penalized.confidence < threshold:
            logger.debug("Dropping %s after validation: confidence %.2f", record.email_id, penalized.confidence)
            continue
        kept.append(penalized)
    return sort_records(kept)
