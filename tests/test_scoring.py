"""
tests/test_scoring.py — classification, extraction bonuses and context reweighting.

Run with: pytest tests/test_scoring.py -v
"""

from datetime import datetime

import pytest

from tripmail.models import Category, ExtractedData, RawEmail
from tripmail.patterns import FieldExtractors, PatternDefinition, PatternRegistry, _ci
from tripmail.scoring import (
    EmailContext,
    adjust_confidence_by_context,
    apply_extraction_bonuses,
    build_email_context,
    classify_email,
    extract_travel_info,
    get_sender_domain,
    score_pattern,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _korean_air_email(make_email):
    return make_email(
        sender="noreply@koreanair.example",
        subject="Korean Air booking confirmation KE123",
        body_text="Your flight KE123 departs on 2024-08-01.",
    )


def _two_pattern_registry(first_weight, second_weight):
    def pattern(name, weight):
        return PatternDefinition(
            name=name,
            category=Category.AIRLINE,
            sender_matchers=_ci(r"@example\.com"),
            subject_matchers=(),
            body_matchers=(),
            weight=weight,
            extractors=FieldExtractors(),
        )
    return PatternRegistry(
        patterns=(pattern("First", first_weight), pattern("Second", second_weight)),
        airline_codes={},
        airports={},
        trusted_domains=(),
    )


# ---------------------------------------------------------------------------
# Unit tests — classification
# ---------------------------------------------------------------------------

def test_score_pattern_counts_each_signal_once(registry, make_email) -> None:
    email = _korean_air_email(make_email)
    pattern = registry.get_pattern("Korean Air")
    text = "\n".join((email.subject, email.body_text)).lower()

    result = score_pattern(pattern, email, text)

    assert result.score == pytest.approx(1.0)
    assert result.weighted == pytest.approx(0.9)
    assert result.tags == ("sender:Korean Air", "subject:Korean Air", "body:Korean Air")


def test_classify_picks_highest_weighted_pattern(registry, make_email) -> None:
    winner, tags = classify_email(_korean_air_email(make_email), registry)

    assert winner.pattern.name == "Korean Air"
    assert "sender:Korean Air" in tags


def test_classify_tie_keeps_earlier_pattern(make_email) -> None:
    registry = _two_pattern_registry(0.8, 0.8)
    winner, tags = classify_email(make_email(sender="a@example.com"), registry)

    assert winner.pattern.name == "First"
    assert tags == ("sender:First", "sender:Second")


def test_classify_no_match_has_no_winner(registry, make_email) -> None:
    winner, tags = classify_email(make_email(sender="friend@example.org", subject="Lunch?"), registry)
    assert winner is None
    assert tags == ()


# ---------------------------------------------------------------------------
# Unit tests — extract_travel_info
# ---------------------------------------------------------------------------

def test_korean_air_confirmation_is_extracted(registry, make_email) -> None:
    record = extract_travel_info(_korean_air_email(make_email), registry)

    assert record is not None
    assert record.category == Category.AIRLINE
    assert record.flight_number == "KE123"
    assert record.departure_date == "2024-08-01"
    assert record.confidence >= 0.6


def test_non_travel_email_is_discarded(registry, make_email) -> None:
    email = make_email(sender="friend@example.org", subject="Lunch tomorrow?", body_text="See you at noon.")
    assert extract_travel_info(email, registry) is None


def test_email_without_timestamp_still_extracts(registry) -> None:
    email = RawEmail(
        id="no-date",
        sender="Korean Air <noreply@koreanair.com>",
        subject="대한항공 항공권 예약 안내",
        body_text="항공편 번호 KE017, ICN → LAX, 2024-08-01",
    )
    record = extract_travel_info(email, registry)

    assert record.flight_number == "KE017"
    assert record.departure_airport == "ICN"
    assert record.arrival_airport == "LAX"


def test_confidence_is_clamped_to_one(registry, make_email) -> None:
    email = make_email(
        sender="Korean Air <noreply@koreanair.com>",
        subject="Korean Air booking confirmation",
        body_text="Flight KE017 ICN → LAX on 2024-08-01\n예약번호: ABC123",
        timestamp=datetime(2024, 7, 1),
    )
    record = extract_travel_info(email, registry)
    assert record.confidence == 1.0


# ---------------------------------------------------------------------------
# Unit tests — extraction bonuses
# ---------------------------------------------------------------------------

def test_bonuses_add_up_and_fill_fields(make_record) -> None:
    record = make_record(
        confidence=0.3,
        extracted_data=ExtractedData(
            dates=("2024-08-01", "2024-08-10"),
            airports=("ICN", "LAX"),
            flights=("KE017",),
            booking_codes=("ABC123",),
            matched_patterns=("sender:Korean Air", "subject:Korean Air"),
        ),
    )

    result = apply_extraction_bonuses(record)

    # 0.3 + flight 0.2 + airports 0.15 + date 0.1 + booking 0.1 + one extra signal 0.05
    assert result.confidence == pytest.approx(0.9)
    assert result.flight_number == "KE017"
    assert (result.departure_airport, result.arrival_airport) == ("ICN", "LAX")
    assert (result.departure_date, result.return_date) == ("2024-08-01", "2024-08-10")
    assert result.booking_reference == "ABC123"
    assert record.confidence == 0.3


def test_bonuses_keep_fields_already_set(make_record) -> None:
    record = make_record(
        confidence=0.5,
        flight_number="KE018",
        extracted_data=ExtractedData(flights=("KE017", "KE018")),
    )
    result = apply_extraction_bonuses(record)

    assert result.flight_number == "KE018"
    assert result.confidence == pytest.approx(0.7)


def test_single_airport_gets_no_route_bonus(make_record) -> None:
    record = make_record(confidence=0.5, extracted_data=ExtractedData(airports=("ICN",)))
    assert apply_extraction_bonuses(record).confidence == pytest.approx(0.5)


# ---------------------------------------------------------------------------
# Unit tests — context reweighting
# ---------------------------------------------------------------------------

def test_get_sender_domain() -> None:
    assert get_sender_domain("Korean Air <NoReply@KoreanAir.com>") == "koreanair.com"
    assert get_sender_domain("not an address") == ""
    assert get_sender_domain("") == ""


def test_build_email_context(make_email) -> None:
    email = make_email(
        sender="someone@example.com",
        subject="Fwd: Booking confirmation",
        body_text="Booking 1, booking 2 and booking 3",
        has_attachments=True,
    )
    context = build_email_context(email)

    assert context == EmailContext(
        sender_domain="example.com",
        has_multiple_bookings=True,
        is_forwarded_email=True,
        has_attachments=True,
    )


def test_two_bookings_are_not_multiple(make_email) -> None:
    context = build_email_context(make_email(body_text="booking one, booking two"))
    assert not context.has_multiple_bookings


@pytest.mark.parametrize("context,expected", [
    (EmailContext(sender_domain="koreanair.com"), 0.65),
    (EmailContext(sender_domain="mail.koreanair.com"), 0.65),
    (EmailContext(sender_domain="notkoreanair.com"), 0.5),
    (EmailContext(has_attachments=True), 0.6),
    (EmailContext(is_forwarded_email=True), 0.4),
    (EmailContext(has_multiple_bookings=True), 0.45),
    (EmailContext(), 0.5),
])
def test_context_adjustments(make_record, context, expected) -> None:
    record = make_record(confidence=0.5)
    assert adjust_confidence_by_context(record, context).confidence == pytest.approx(expected)


def test_context_adjustment_is_clamped_and_pure(make_record) -> None:
    record = make_record(confidence=0.95)
    context = EmailContext(sender_domain="delta.com", has_attachments=True)

    adjusted = adjust_confidence_by_context(record, context)

    assert adjusted.confidence == 1.0
    assert record.confidence == 0.95


def test_extra_trusted_domains(make_record) -> None:
    record = make_record(confidence=0.5)
    context = EmailContext(sender_domain="travel.corp.example")

    adjusted = adjust_confidence_by_context(record, context, trusted_domains=("corp.example",))
    assert adjusted.confidence == pytest.approx(0.65)
