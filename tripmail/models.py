"""
Data model for the travel-email pipeline.

Every type here is a frozen dataclass. Anything that "changes" a record
(penalties, context adjustments, merges) builds a new object with
dataclasses.replace, so inputs handed to the pipeline are never mutated.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple


class Category(str, Enum):
    AIRLINE = "airline"
    HOTEL = "hotel"
    BOOKING_PLATFORM = "booking_platform"
    RENTAL = "rental"
    TRAVEL_AGENCY = "travel_agency"


class TravelPurpose(str, Enum):
    TOURISM = "TOURISM"
    BUSINESS = "BUSINESS"
    TRANSIT = "TRANSIT"
    EDUCATION = "EDUCATION"
    FAMILY = "FAMILY"
    MEDICAL = "MEDICAL"
    OTHER = "OTHER"


# Placeholders written by the confirmation UI for legs it could not fill in
UNKNOWN_FLIGHT_NUMBER = "UNKNOWN"
UNKNOWN_AIRLINE = "Unknown Airline"


@dataclass(frozen=True)
class RawEmail:
    """One email as handed over by the retrieval side. Never mutated."""
    id: str
    subject: str = ""
    sender: str = ""
    recipient: str = ""
    timestamp: Optional[datetime] = None
    body_text: str = ""
    snippet: str = ""
    has_attachments: bool = False


@dataclass(frozen=True)
class ExtractedData:
    """Raw matches collected while extracting one email (ordered, no duplicates)."""
    dates: Tuple[str, ...] = ()
    airports: Tuple[str, ...] = ()
    flights: Tuple[str, ...] = ()
    booking_codes: Tuple[str, ...] = ()
    matched_patterns: Tuple[str, ...] = ()

    def union(self, other):
        """Combine two bags, keeping first-seen order."""
        return ExtractedData(
            dates=unique(self.dates + other.dates),
            airports=unique(self.airports + other.airports),
            flights=unique(self.flights + other.flights),
            booking_codes=unique(self.booking_codes + other.booking_codes),
            matched_patterns=unique(self.matched_patterns + other.matched_patterns),
        )


# Structured fields compared and filled during merge / completeness scoring
RECORD_FIELDS = (
    "departure_date",
    "return_date",
    "departure_airport",
    "arrival_airport",
    "flight_number",
    "booking_reference",
    "hotel_name",
    "passenger_name",
)


@dataclass(frozen=True)
class ExtractedRecord:
    email_id: str
    subject: str
    sender: str
    confidence: float
    category: Optional[Category] = None
    departure_date: Optional[str] = None
    return_date: Optional[str] = None
    departure_airport: Optional[str] = None
    arrival_airport: Optional[str] = None
    flight_number: Optional[str] = None
    booking_reference: Optional[str] = None
    hotel_name: Optional[str] = None
    passenger_name: Optional[str] = None
    extracted_data: ExtractedData = field(default_factory=ExtractedData)
    # Merge bookkeeping: how many merges produced this record and the best
    # confidence of its constituents before any merge bonus.
    merge_count: int = 0
    base_confidence: Optional[float] = None


@dataclass(frozen=True)
class ValidationResult:
    is_consistent: bool
    issues: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AirportInfo:
    code: str = ""
    name: str = ""
    city: str = ""
    country: str = ""
    country_code: str = ""


@dataclass(frozen=True)
class FlightLeg:
    departure_airport: AirportInfo
    arrival_airport: AirportInfo
    departure_date: date
    flight_number: str = UNKNOWN_FLIGHT_NUMBER
    airline: str = UNKNOWN_AIRLINE
    booking_reference: Optional[str] = None
    passenger_name: Optional[str] = None
    email_id: str = ""
    confidence: float = 0.0


@dataclass(frozen=True)
class TravelPeriod:
    id: str
    country_code: str
    country_name: str
    entry_date: Optional[date]
    exit_date: Optional[date] = None
    flights: Tuple[FlightLeg, ...] = ()
    purpose: TravelPurpose = TravelPurpose.TOURISM
    notes: str = ""
    confidence: float = 0.0
    extracted_at: Optional[datetime] = None


@dataclass(frozen=True)
class RoundTripSuggestion:
    id: str
    outbound: TravelPeriod
    return_period: TravelPeriod
    merged: TravelPeriod
    suggestion_text: str


def unique(items):
    """Drop duplicates from a sequence while preserving order."""
    return tuple(dict.fromkeys(item for item in items if item))


def clamp_confidence(value):
    """Clamp a confidence score to [0, 1]."""
    return max(0.0, min(1.0, value))
