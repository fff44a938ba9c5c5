"""
tests/test_periods.py — flight legs, travel periods and duplicate-flight resolution.

Run with: pytest tests/test_periods.py -v
"""

from datetime import date, datetime

import pytest

from tripmail.models import UNKNOWN_AIRLINE, UNKNOWN_FLIGHT_NUMBER, TravelPeriod, TravelPurpose
from tripmail.periods import (
    create_travel_periods,
    determine_travel_purpose,
    flight_leg_from_record,
    flight_legs_from_record,
    period_dedup_key,
    quality_score,
    remove_duplicate_periods,
    sort_periods,
)

EXTRACTED_AT = datetime(2024, 7, 21, 12, 0)


# ---------------------------------------------------------------------------
# Unit tests — flight legs
# ---------------------------------------------------------------------------

def test_leg_from_complete_record(registry, make_record) -> None:
    record = make_record(
        "mail-1", 0.8,
        departure_airport="ICN", arrival_airport="LAX", departure_date="2024-08-01",
        flight_number="KE017", booking_reference="ABC123", passenger_name="Gildong Hong",
    )

    leg = flight_leg_from_record(record, registry)

    assert leg.departure_airport.code == "ICN"
    assert leg.arrival_airport.country_code == "US"
    assert leg.departure_date == date(2024, 8, 1)
    assert leg.flight_number == "KE017"
    assert leg.airline == "Korean Air"
    assert leg.booking_reference == "ABC123"
    assert leg.email_id == "mail-1"
    assert leg.confidence == 0.8


def test_leg_airline_falls_back_to_sender(registry, make_record) -> None:
    record = make_record(sender="United <notifications@united.com>", subject="Trip details",
                         departure_airport="LAX", arrival_airport="NRT", departure_date="2024-08-01")

    leg = flight_leg_from_record(record, registry)

    assert leg.flight_number == UNKNOWN_FLIGHT_NUMBER
    assert leg.airline == "United"


@pytest.mark.parametrize("fields", [
    {"departure_airport": "ICN", "arrival_airport": "ZZZ", "departure_date": "2024-08-01"},
    {"departure_airport": "ICN", "arrival_airport": "LAX"},
    {"departure_airport": "ICN", "arrival_airport": "LAX", "departure_date": "Aug 1"},
    {"arrival_airport": "LAX", "departure_date": "2024-08-01"},
])
def test_incomplete_records_give_no_leg(registry, make_record, fields) -> None:
    assert flight_leg_from_record(make_record(**fields), registry) is None
    assert flight_legs_from_record(make_record(**fields), registry) == ()


def test_return_date_adds_reverse_leg(registry, make_record) -> None:
    record = make_record(
        "mail-1", 0.8,
        departure_airport="ICN", arrival_airport="LAX", departure_date="2024-08-01",
        return_date="2024-08-10", flight_number="KE017", booking_reference="ABC123",
    )

    outbound, inbound = flight_legs_from_record(record, registry)

    assert (outbound.departure_airport.code, outbound.arrival_airport.code) == ("ICN", "LAX")
    assert (inbound.departure_airport.code, inbound.arrival_airport.code) == ("LAX", "ICN")
    assert inbound.departure_date == date(2024, 8, 10)
    assert inbound.flight_number == UNKNOWN_FLIGHT_NUMBER
    assert inbound.airline == "Korean Air"
    assert inbound.booking_reference == "ABC123"

    periods = create_travel_periods([outbound, inbound], extracted_at=EXTRACTED_AT)
    assert [(p.id, p.country_code, p.entry_date) for p in periods] == [
        ("period-mail-1-ICNLAX", "US", date(2024, 8, 1)),
        ("period-mail-1-LAXICN", "KR", date(2024, 8, 10)),
    ]


@pytest.mark.parametrize("return_date", [None, "2024-07-30", "2024-08-01", "Aug 10"])
def test_unusable_return_date_keeps_one_leg(registry, make_record, return_date) -> None:
    record = make_record(departure_airport="ICN", arrival_airport="LAX", departure_date="2024-08-01",
                         return_date=return_date)
    (leg,) = flight_legs_from_record(record, registry)
    assert leg.arrival_airport.code == "LAX"


# ---------------------------------------------------------------------------
# Unit tests — travel periods
# ---------------------------------------------------------------------------

def test_international_leg_becomes_period_in_arrival_country(make_leg) -> None:
    leg = make_leg("ICN", "NRT", date(2024, 8, 1), flight_number="KE703", airline="Korean Air",
                   email_id="mail-1", confidence=0.9)

    (period,) = create_travel_periods([leg], extracted_at=EXTRACTED_AT)

    assert period.id == "period-mail-1-ICNNRT"
    assert period.country_code == "JP"
    assert period.country_name == "Japan"
    assert period.entry_date == date(2024, 8, 1)
    assert period.exit_date is None
    assert period.flights == (leg,)
    assert period.confidence == 0.9
    assert period.extracted_at == EXTRACTED_AT
    assert period.notes == (
        "Flight: KE703 | Departure: Seoul → Tokyo | Airline: Korean Air | "
        "One-way flight (return date unknown)"
    )


def test_domestic_legs_are_skipped(make_leg) -> None:
    legs = [make_leg("GMP", "CJU", date(2024, 8, 1)), make_leg("ICN", "LAX", date(2024, 8, 2))]
    periods = create_travel_periods(legs, extracted_at=EXTRACTED_AT)
    assert [p.country_code for p in periods] == ["US"]


def test_periods_are_sorted_by_departure(make_leg) -> None:
    legs = [
        make_leg("LAX", "ICN", date(2024, 8, 10), email_id="b"),
        make_leg("ICN", "LAX", date(2024, 8, 1), email_id="a"),
    ]
    periods = create_travel_periods(legs, extracted_at=EXTRACTED_AT)
    assert [p.entry_date for p in periods] == [date(2024, 8, 1), date(2024, 8, 10)]


def test_travel_purpose(make_leg) -> None:
    out = make_leg("ICN", "LAX", date(2024, 8, 1))
    assert determine_travel_purpose([out]) == TravelPurpose.TOURISM
    assert determine_travel_purpose([make_leg(booking_reference="ABCD1234")]) == TravelPurpose.BUSINESS
    assert determine_travel_purpose([out, make_leg("LAX", "ICN", date(2024, 8, 1))]) == TravelPurpose.TRANSIT
    assert determine_travel_purpose([out, make_leg("LAX", "ICN", date(2024, 12, 1))]) == TravelPurpose.EDUCATION


# ---------------------------------------------------------------------------
# Unit tests — duplicate resolution
# ---------------------------------------------------------------------------

def test_quality_score(make_period) -> None:
    full = make_period("full", confidence=1.0, flight_number="KE017", airline="Korean Air",
                       booking_reference="ABC123", passenger_name="Gildong Hong")
    bare = make_period("bare", confidence=0.5)

    assert quality_score(full.flights[0], full) == pytest.approx(100)
    assert quality_score(bare.flights[0], bare) == pytest.approx(5)


def test_best_quality_period_survives_in_any_order(make_period) -> None:
    good = make_period("good", confidence=0.6, flight_number="KE017", airline="Korean Air")
    poor = make_period("poor", confidence=0.9)

    assert [p.id for p in remove_duplicate_periods([poor, good])] == ["good"]
    assert [p.id for p in remove_duplicate_periods([good, poor])] == ["good"]


def test_confirmed_flight_beats_bare_duplicate(make_period) -> None:
    confirmed = make_period("confirmed", confidence=0.5, flight_number="KE017", airline="Korean Air",
                            booking_reference="ABC123")
    bare = make_period("bare", confidence=1.0)

    assert quality_score(confirmed.flights[0], confirmed) >= 85
    assert quality_score(bare.flights[0], bare) <= 10
    assert [p.id for p in remove_duplicate_periods([bare, confirmed])] == ["confirmed"]


def test_equal_quality_keeps_first(make_period) -> None:
    first = make_period("first", confidence=0.7)
    second = make_period("second", confidence=0.7)
    assert [p.id for p in remove_duplicate_periods([first, second])] == ["first"]


def test_different_routes_or_dates_are_kept(make_period) -> None:
    periods = [
        make_period("b", "ICN", "NRT", date(2024, 9, 1)),
        make_period("a", "ICN", "LAX", date(2024, 8, 1)),
        make_period("c", "ICN", "LAX", date(2024, 8, 2)),
    ]
    assert [p.id for p in remove_duplicate_periods(periods)] == ["a", "c", "b"]


def test_periods_without_flights_are_dropped(make_period) -> None:
    empty = TravelPeriod(id="empty", country_code="JP", country_name="Japan", entry_date=date(2024, 8, 1))
    assert period_dedup_key(empty) is None
    assert [p.id for p in remove_duplicate_periods([empty, make_period("real")])] == ["real"]


def test_dedup_key(make_period) -> None:
    assert period_dedup_key(make_period("p", "ICN", "LAX", date(2024, 8, 1))) == "ICN-LAX-2024-08-01"


def test_sort_periods_puts_undated_last(make_period) -> None:
    undated = TravelPeriod(id="undated", country_code="JP", country_name="Japan", entry_date=None)
    late = make_period("late", day=date(2024, 9, 1))
    early = make_period("early", day=date(2024, 8, 1))
    assert [p.id for p in sort_periods([undated, late, early])] == ["early", "late", "undated"]


def test_unknown_placeholders_score_as_missing(make_period) -> None:
    period = make_period("p", confidence=0.0, flight_number=UNKNOWN_FLIGHT_NUMBER, airline=UNKNOWN_AIRLINE)
    assert quality_score(period.flights[0], period) == 0
