"""
Round-trip detection between one-way travel periods.

An A->B period followed by a B->A period within the window is proposed as a
single round trip. Suggestions never touch the original periods; a reviewer
accepts or rejects them and apply_suggestion() computes the resulting list.
"""

import logging
from dataclasses import dataclass, field

from .models import RoundTripSuggestion, TravelPeriod
from .periods import period_sort_date, sort_periods

logger = logging.getLogger(__name__)

ROUND_TRIP_WINDOW_DAYS = 30


def pair_key(first, second):
    """Order-independent key for a pair of periods, as a sorted id tuple."""
    return tuple(sorted((first.id, second.id)))


def is_reciprocal(first, second):
    """Check that the first flights go A->B and B->A (by country)."""
    if not first.flights or not second.flights:
        return False
    a, b = first.flights[0], second.flights[0]
    a_from, a_to = a.departure_airport.country_code, a.arrival_airport.country_code
    b_from, b_to = b.departure_airport.country_code, b.arrival_airport.country_code
    if not (a_from and a_to and b_from and b_to):
        return False
    return a_from == b_to and a_to == b_from


def _place(airport):
    return airport.city or airport.code or "UNKNOWN"


def merge_round_trip(outbound, return_period):
    """Build the combined period for an outbound/return pair."""
    first_leg = outbound.flights[0]
    flights = outbound.flights + return_period.flights
    stamps = [p.extracted_at for p in (outbound, return_period) if p.extracted_at]
    return TravelPeriod(
        id=f"merged-{outbound.id}-{return_period.id}",
        country_code=outbound.country_code,
        country_name=outbound.country_name,
        entry_date=outbound.entry_date,
        exit_date=return_period.entry_date,
        flights=flights,
        purpose=outbound.purpose,
        notes=(f"Round trip: {_place(first_leg.departure_airport)} ⇄ "
               f"{_place(first_leg.arrival_airport)} | {len(flights)} flights"),
        confidence=max(outbound.confidence, return_period.confidence),
        extracted_at=max(stamps) if stamps else None,
    )


@dataclass
class RoundTripDetector:
    """Finds round-trip pairs; pairs already suggested are never suggested again."""
    window_days: int = ROUND_TRIP_WINDOW_DAYS
    processed_pairs: set = field(default_factory=set)

    def detect(self, periods):
        """Scan all period pairs and return new round-trip suggestions.

        Args:
            periods: Sequence of deduplicated TravelPeriod

        Returns:
            Tuple of RoundTripSuggestion
        """
        periods = tuple(periods)
        suggestions = []
        for i, first in enumerate(periods):
            for second in periods[i + 1:]:
                key = pair_key(first, second)
                if key in self.processed_pairs or not is_reciprocal(first, second):
                    continue

                first_date, second_date = period_sort_date(first), period_sort_date(second)
                if first_date is None or second_date is None:
                    continue
                if abs((second_date - first_date).days) > self.window_days:
                    continue

                # Same-day pairs are ordered by id so input order never matters
                if (first_date, first.id) <= (second_date, second.id):
                    outbound, return_period = first, second
                else:
                    outbound, return_period = second, first

                self.processed_pairs.add(key)
                suggestions.append(RoundTripSuggestion(
                    id="suggestion-" + "-".join(key),
                    outbound=outbound,
                    return_period=return_period,
                    merged=merge_round_trip(outbound, return_period),
                    suggestion_text=(f"This looks like a round trip to {outbound.country_name}. "
                                     f"Merge it into one trip?"),
                ))
                logger.debug("Round trip suggested: %s + %s", outbound.id, return_period.id)
        return tuple(suggestions)


def detect_round_trips(periods, window_days=ROUND_TRIP_WINDOW_DAYS):
    """One-shot detection with a fresh detector."""
    return RoundTripDetector(window_days=window_days).detect(periods)


def apply_suggestion(periods, suggestion, accept):
    """Apply a reviewer's decision on a round-trip suggestion.

    Args:
        periods: Current sequence of TravelPeriod
        suggestion: RoundTripSuggestion being decided
        accept: True replaces both originals with the merged period

    Returns:
        New tuple of TravelPeriod; rejected or stale suggestions leave it unchanged
    """
    periods = tuple(periods)
    if not accept:
        return periods

    original_ids = {suggestion.outbound.id, suggestion.return_period.id}
    present = {p.id for p in periods} & original_ids
    if present != original_ids:
        logger.warning("Suggestion %s refers to periods no longer in the list", suggestion.id)
        return periods

    remaining = [p for p in periods if p.id not in original_ids]
    return sort_periods(remaining + [suggestion.merged])
