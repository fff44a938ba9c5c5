"""
tests/conftest.py — shared builders for emails, records, legs and periods.
"""

from datetime import date, datetime

import pytest

from tripmail.airports import AIRPORTS
from tripmail.models import (
    Category,
    ExtractedRecord,
    FlightLeg,
    RawEmail,
    TravelPeriod,
)
from tripmail.patterns import default_registry


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def make_email():
    def _make(id="mail-1", subject="", sender="", body_text="", snippet="",
              timestamp=datetime(2024, 7, 20, 9, 30), has_attachments=False):
        return RawEmail(
            id=id,
            subject=subject,
            sender=sender,
            recipient="traveler@example.com",
            timestamp=timestamp,
            body_text=body_text,
            snippet=snippet,
            has_attachments=has_attachments,
        )
    return _make


@pytest.fixture
def make_record():
    def _make(email_id="mail-1", confidence=0.7, **fields):
        fields.setdefault("category", Category.AIRLINE)
        return ExtractedRecord(
            email_id=email_id,
            subject=fields.pop("subject", "Booking confirmation"),
            sender=fields.pop("sender", "noreply@koreanair.com"),
            confidence=confidence,
            **fields,
        )
    return _make


@pytest.fixture
def make_leg():
    def _make(dep="ICN", arr="LAX", day=date(2024, 8, 1), **fields):
        return FlightLeg(
            departure_airport=AIRPORTS[dep],
            arrival_airport=AIRPORTS[arr],
            departure_date=day,
            **fields,
        )
    return _make


@pytest.fixture
def make_period(make_leg):
    def _make(id, dep="ICN", arr="LAX", day=date(2024, 8, 1), confidence=0.8, **leg_fields):
        leg = make_leg(dep, arr, day, **leg_fields)
        return TravelPeriod(
            id=id,
            country_code=leg.arrival_airport.country_code,
            country_name=leg.arrival_airport.country,
            entry_date=day,
            flights=(leg,),
            confidence=confidence,
        )
    return _make
