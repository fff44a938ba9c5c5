"""
Email-level deduplication of travel records.

The same booking typically produces several emails (confirmation, e-ticket,
check-in reminder...). Records describing the same trip are merged into the
most complete version; every step returns new objects and never mutates its
inputs.
"""

import logging
from dataclasses import replace
from functools import reduce

from .models import RECORD_FIELDS, clamp_confidence
from .parser import normalize_date

logger = logging.getLogger(__name__)

MERGE_BONUS = 0.05

# "once": total merge bonus per trip is capped at MERGE_BONUS
# "cumulative": every merge adds the bonus again on top of the current confidence
MERGE_BONUS_POLICIES = ('once', 'cumulative')


def _normalized(value):
    return normalize_date(value) or value


def is_same_trip(a, b):
    """Check whether two records describe the same trip.

    Same trip if they share a flight number, or a booking reference, or the
    same departure date together with the same departure airport.
    """
    if a.flight_number and a.flight_number == b.flight_number:
        return True
    if a.booking_reference and a.booking_reference == b.booking_reference:
        return True
    if (a.departure_date and b.departure_date and a.departure_airport
            and _normalized(a.departure_date) == _normalized(b.departure_date)
            and a.departure_airport == b.departure_airport):
        return True
    return False


def _base_confidence(record):
    return record.confidence if record.base_confidence is None else record.base_confidence


def merge_records(a, b, bonus=MERGE_BONUS, policy='once'):
    """Merge two records describing the same trip.

    The record with the higher confidence (ties: `a`) is the base; its empty
    fields are filled from the other one and all raw matches are combined.

    Args:
        a: Existing ExtractedRecord
        b: Incoming ExtractedRecord
        bonus: Confidence bonus for corroborating records
        policy: "once" or "cumulative" (see MERGE_BONUS_POLICIES)

    Returns:
        New merged ExtractedRecord
    """
    if policy not in MERGE_BONUS_POLICIES:
        raise ValueError(f"Unknown merge bonus policy: {policy!r}")

    primary, secondary = (a, b) if a.confidence >= b.confidence else (b, a)

    fills = {
        name: getattr(secondary, name)
        for name in RECORD_FIELDS
        if not getattr(primary, name) and getattr(secondary, name)
    }
    if primary.category is None and secondary.category is not None:
        fills['category'] = secondary.category

    base = max(_base_confidence(a), _base_confidence(b))
    if policy == 'once':
        confidence = clamp_confidence(base + bonus)
    else:
        confidence = clamp_confidence(max(a.confidence, b.confidence) + bonus)

    return replace(
        primary,
        extracted_data=primary.extracted_data.union(secondary.extracted_data),
        confidence=confidence,
        merge_count=a.merge_count + b.merge_count + 1,
        base_confidence=base,
        **fills,
    )


def merge_or_append(accepted, candidate, bonus=MERGE_BONUS, policy='once'):
    """Fold step: merge `candidate` into the first equivalent record or append it.

    Args:
        accepted: Tuple of records accepted so far
        candidate: Incoming ExtractedRecord

    Returns:
        New tuple of records
    """
    for index, existing in enumerate(accepted):
        if is_same_trip(existing, candidate):
            merged = merge_records(existing, candidate, bonus, policy)
            logger.debug("Merged %s into %s (confidence %.2f)",
                         candidate.email_id, existing.email_id, merged.confidence)
            return accepted[:index] + (merged,) + accepted[index + 1:]
    return accepted + (candidate,)


def deduplicate_records(records, bonus=MERGE_BONUS, policy='once'):
    """Collapse records describing the same trip, keeping first-seen order."""
    if policy not in MERGE_BONUS_POLICIES:
        raise ValueError(f"Unknown merge bonus policy: {policy!r}")
    return reduce(
        lambda accepted, candidate: merge_or_append(accepted, candidate, bonus, policy),
        records,
        (),
    )
