"""
Travel periods built from accepted records, and duplicate-flight resolution.

An accepted record with a known route and date becomes a FlightLeg, or two
when it also carries a return date; every international leg becomes a
one-way TravelPeriod in the arrival country.
Different emails often yield the same leg, so periods sharing a route and
date are reduced to the one whose flight data is most complete.
"""

import logging
from dataclasses import replace
from datetime import date, datetime

from .airlines import extract_airline_from_text, get_airline_for_code, split_flight_number
from .models import (
    UNKNOWN_AIRLINE,
    UNKNOWN_FLIGHT_NUMBER,
    FlightLeg,
    TravelPeriod,
    TravelPurpose,
)

logger = logging.getLogger(__name__)

# Quality score weights for picking the best of duplicate flights
QUALITY_WEIGHTS = {
    'flight_number': 50,
    'airline': 20,
    'booking_reference': 15,
    'confidence': 10,    # multiplied by period confidence (0-1)
    'passenger_name': 5,
}


# ============================================================================
# LEGS AND PERIODS
# ============================================================================

def flight_leg_from_record(record, registry):
    """Turn an accepted record into a FlightLeg.

    Needs both airports in the registry and a normalized departure date.

    Returns:
        FlightLeg or None if the record does not describe a usable flight
    """
    departure = registry.airports.get(record.departure_airport or '')
    arrival = registry.airports.get(record.arrival_airport or '')
    if not departure or not arrival or not record.departure_date:
        return None
    try:
        departure_date = date.fromisoformat(record.departure_date)
    except ValueError:
        return None

    airline = None
    parts = split_flight_number(record.flight_number, registry.airline_codes) if record.flight_number else None
    if parts:
        airline = get_airline_for_code(parts[0], registry.airline_codes)
    if not airline:
        airline = extract_airline_from_text(record.subject, record.sender)

    return FlightLeg(
        departure_airport=departure,
        arrival_airport=arrival,
        departure_date=departure_date,
        flight_number=record.flight_number or UNKNOWN_FLIGHT_NUMBER,
        airline=airline or UNKNOWN_AIRLINE,
        booking_reference=record.booking_reference,
        passenger_name=record.passenger_name,
        email_id=record.email_id,
        confidence=record.confidence,
    )


def flight_legs_from_record(record, registry):
    """Outbound leg of a record, plus the reverse leg when it has a return date.

    The reverse leg flies the same airports the other way on the return
    date. Its flight number is unknown; airline and booking carry over.

    Returns:
        Tuple of FlightLeg (empty, one or two legs)
    """
    outbound = flight_leg_from_record(record, registry)
    if outbound is None:
        return ()
    try:
        return_date = date.fromisoformat(record.return_date or '')
    except ValueError:
        return (outbound,)
    if return_date <= outbound.departure_date:
        logger.debug("Return date %s of %s is not after departure, ignored", return_date, record.email_id)
        return (outbound,)

    inbound = replace(
        outbound,
        departure_airport=outbound.arrival_airport,
        arrival_airport=outbound.departure_airport,
        departure_date=return_date,
        flight_number=UNKNOWN_FLIGHT_NUMBER,
    )
    return (outbound, inbound)


def determine_travel_purpose(legs):
    """Rough purpose guess; long booking references are typical of corporate bookings."""
    if any(leg.booking_reference and len(leg.booking_reference) > 6 for leg in legs):
        return TravelPurpose.BUSINESS
    if len(legs) >= 2:
        stay_days = (legs[-1].departure_date - legs[0].departure_date).days
        if stay_days < 1:
            return TravelPurpose.TRANSIT
        if stay_days > 90:
            return TravelPurpose.EDUCATION
    return TravelPurpose.TOURISM


def _place(airport):
    return airport.city or airport.code or "UNKNOWN"


def single_flight_notes(leg):
    """Human-readable summary of a one-way leg."""
    notes = []
    if leg.flight_number != UNKNOWN_FLIGHT_NUMBER:
        notes.append(f"Flight: {leg.flight_number}")
    notes.append(f"Departure: {_place(leg.departure_airport)} → {_place(leg.arrival_airport)}")
    if leg.airline != UNKNOWN_AIRLINE:
        notes.append(f"Airline: {leg.airline}")
    if leg.booking_reference:
        notes.append(f"Booking: {leg.booking_reference}")
    notes.append("One-way flight (return date unknown)")
    return " | ".join(notes)


def create_travel_periods(legs, extracted_at=None):
    """Create one travel period per international leg.

    Domestic legs (same country on both ends) are skipped. The period is in
    the arrival country and starts on the departure date.

    Args:
        legs: Iterable of FlightLeg
        extracted_at: Timestamp recorded on the periods (defaults to now)

    Returns:
        Tuple of TravelPeriod sorted by departure date
    """
    extracted_at = extracted_at or datetime.now()
    periods = []
    for leg in sorted(legs, key=lambda l: l.departure_date):
        if leg.departure_airport.country_code == leg.arrival_airport.country_code:
            logger.debug("Skipping domestic flight %s %s-%s", leg.flight_number,
                         leg.departure_airport.code, leg.arrival_airport.code)
            continue
        periods.append(TravelPeriod(
            id=f"period-{leg.email_id}-{leg.departure_airport.code}{leg.arrival_airport.code}",
            country_code=leg.arrival_airport.country_code,
            country_name=leg.arrival_airport.country,
            entry_date=leg.departure_date,
            flights=(leg,),
            purpose=determine_travel_purpose([leg]),
            notes=single_flight_notes(leg),
            confidence=leg.confidence,
            extracted_at=extracted_at,
        ))
    return tuple(periods)


# ============================================================================
# FLIGHT QUALITY RESOLUTION
# ============================================================================

def quality_score(leg, period):
    """Score how complete a period's flight data is (0 - 100)."""
    score = 0.0
    if leg.flight_number and leg.flight_number != UNKNOWN_FLIGHT_NUMBER:
        score += QUALITY_WEIGHTS['flight_number']
    if leg.airline and leg.airline != UNKNOWN_AIRLINE:
        score += QUALITY_WEIGHTS['airline']
    if leg.booking_reference:
        score += QUALITY_WEIGHTS['booking_reference']
    score += (period.confidence or 0.0) * QUALITY_WEIGHTS['confidence']
    if leg.passenger_name:
        score += QUALITY_WEIGHTS['passenger_name']
    return score


def _airport_key(airport):
    return airport.code or airport.city or "UNKNOWN"


def period_dedup_key(period):
    """Route+date key of a period's first flight, like "ICN-LAX-2024-08-01"."""
    if not period.flights:
        return None
    leg = period.flights[0]
    day = leg.departure_date or period.entry_date
    day_str = day.isoformat() if day else "UNKNOWN"
    return f"{_airport_key(leg.departure_airport)}-{_airport_key(leg.arrival_airport)}-{day_str}"


def period_sort_date(period):
    """Entry date, falling back to the first flight's date."""
    if period.entry_date:
        return period.entry_date
    if period.flights:
        return period.flights[0].departure_date
    return None


def sort_periods(periods):
    """Sort periods by date ascending; undated periods go last."""
    return tuple(sorted(periods, key=lambda p: (period_sort_date(p) is None, period_sort_date(p) or date.min)))


def remove_duplicate_periods(periods):
    """Keep the best-quality period for each route+date.

    A later duplicate replaces the kept one only with a strictly higher
    quality score. Periods without flights are dropped.

    Returns:
        Tuple of TravelPeriod sorted by entry date
    """
    periods = tuple(periods)
    best = {}
    for period in periods:
        key = period_dedup_key(period)
        if key is None:
            continue
        existing = best.get(key)
        if existing is None:
            best[key] = period
            continue
        if quality_score(period.flights[0], period) > quality_score(existing.flights[0], existing):
            best[key] = period

    unique_periods = sort_periods(best.values())
    removed = len(periods) - len(unique_periods)
    if removed:
        logger.debug("Removed %d duplicate periods (%d -> %d)", removed, len(periods), len(unique_periods))
    return unique_periods
