"""
Travel email pattern registry.

Each PatternDefinition describes one kind of sender (an airline, a booking
platform, a hotel chain...) by the regexes that recognise its sender, subject
and body, a weight saying how distinctive those signals are, and a table of
specialized field extractors used when the pattern wins classification.

The registry is an immutable value: build it once (default_registry() or
build_registry(config)) and hand it to the pipeline entry points.
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Tuple

from .airlines import AIRLINE_CODES, TRUSTED_SENDER_DOMAINS
from .airports import AIRPORTS, load_airport_codes
from .models import AirportInfo, Category
from .parser import PERSON_NAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldExtractors:
    """Per-field regexes run only for the winning pattern."""
    flights: Tuple[re.Pattern, ...] = ()
    booking_references: Tuple[re.Pattern, ...] = ()
    airports: Tuple[re.Pattern, ...] = ()
    dates: Tuple[re.Pattern, ...] = ()
    passengers: Tuple[re.Pattern, ...] = ()
    hotels: Tuple[re.Pattern, ...] = ()


@dataclass(frozen=True)
class PatternDefinition:
    name: str
    category: Category
    sender_matchers: Tuple[re.Pattern, ...]
    subject_matchers: Tuple[re.Pattern, ...]
    body_matchers: Tuple[re.Pattern, ...]
    weight: float
    extractors: FieldExtractors = field(default_factory=FieldExtractors)

    def __post_init__(self):
        if not self.weight > 0:
            raise ValueError(f"Pattern {self.name!r} needs a positive weight, got {self.weight!r}")


@dataclass(frozen=True)
class PatternRegistry:
    """Read-only lookup tables shared by every extraction call."""
    patterns: Tuple[PatternDefinition, ...]
    airline_codes: Mapping[str, str]
    airports: Mapping[str, AirportInfo]
    trusted_domains: Tuple[str, ...]

    def get_pattern(self, name):
        for pattern in self.patterns:
            if pattern.name == name:
                return pattern
        return None


def _ci(*patterns):
    """Compile case-insensitive matchers."""
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _cs(*patterns):
    """Compile case-sensitive matchers (codes must stay uppercase; keywords use (?i:...))."""
    return tuple(re.compile(p) for p in patterns)


# ============================================================================
# SHARED EXTRACTOR FRAGMENTS
# ============================================================================

_AIRPORT_PAIRS = _cs(
    r'\b([A-Z]{3})\s*(?:→|->)\s*([A-Z]{3})\b',
    r'\b([A-Z]{3})\s*-\s*([A-Z]{3})\b',
)

# Day-first numeric dates after a label, e.g. "Check-in: 01.08.2024"
_NUMERIC_DATE = r'(\d{1,2}[/\-.]\d{1,2}[/\-.]\d{4})'
_YMD_DATE = r'(\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2})'

_KOREAN_BOOKING_NUMBER = r'예약\s*번호[:\s]*([A-Z0-9]{6,})\b'


# ============================================================================
# PATTERN CATALOGUE (registry order matters: ties go to the earlier entry)
# ============================================================================

_KOREAN_AIRLINE_PATTERNS = (
    PatternDefinition(
        name='Korean Air',
        category=Category.AIRLINE,
        sender_matchers=_ci(r'@koreanair\.com\b', r'@ke\.co\.kr\b', r'korean\s*air'),
        subject_matchers=_ci(
            r'대한항공.*예약',
            r'korean\s*air.*booking',
            r'항공권.*발권',
            r'e-ticket.*confirmation',
        ),
        body_matchers=_ci(
            r'항공편\s*번호',
            r'departure\s*time',
            r'출발\s*시간',
            r'\bKE\s*\d{3,4}\b',
        ),
        weight=0.9,
        extractors=FieldExtractors(
            flights=_ci(r'\bKE\s*\d{3,4}\b'),
            booking_references=_cs(
                _KOREAN_BOOKING_NUMBER,
                r'(?i:confirmation)[:\s]*([A-Z0-9]{6,})\b',
            ),
            airports=_AIRPORT_PAIRS,
        ),
    ),
    PatternDefinition(
        name='Asiana Airlines',
        category=Category.AIRLINE,
        sender_matchers=_ci(r'@flyasiana\.com\b', r'@asiana\.co\.kr\b', r'asiana'),
        subject_matchers=_ci(r'아시아나.*예약', r'asiana.*booking', r'항공권.*확인'),
        body_matchers=_ci(r'\bOZ\s*\d{3,4}\b', r'아시아나항공'),
        weight=0.9,
        extractors=FieldExtractors(
            flights=_ci(r'\bOZ\s*\d{3,4}\b'),
            booking_references=_cs(_KOREAN_BOOKING_NUMBER),
            airports=_AIRPORT_PAIRS,
        ),
    ),
    PatternDefinition(
        name='Jeju Air',
        category=Category.AIRLINE,
        sender_matchers=_ci(r'@jejuair\.net\b', r'jeju\s*air'),
        subject_matchers=_ci(r'제주항공.*예약', r'jeju\s*air.*booking'),
        body_matchers=_ci(r'\b7C\s*\d{3,4}\b', r'제주항공'),
        weight=0.8,
        extractors=FieldExtractors(
            flights=_ci(r'\b7C\s*\d{3,4}\b'),
        ),
    ),
)

_INTERNATIONAL_AIRLINE_PATTERNS = (
    PatternDefinition(
        name='United Airlines',
        category=Category.AIRLINE,
        sender_matchers=_ci(r'@united\.com\b', r'united\s*airlines'),
        subject_matchers=_ci(r'united.*confirmation', r'flight.*confirmation', r'e-ticket'),
        body_matchers=_ci(r'\bUA\s*\d{3,4}\b', r'united\s*airlines'),
        weight=0.9,
        extractors=FieldExtractors(
            flights=_ci(r'\bUA\s*\d{3,4}\b'),
            booking_references=_cs(r'(?i:confirmation\s*number)[:\s]*([A-Z0-9]{6,})\b'),
        ),
    ),
    PatternDefinition(
        name='Delta Air Lines',
        category=Category.AIRLINE,
        sender_matchers=_ci(r'@delta\.com\b', r'delta\s*air\s*lines', r'delta\s*airlines'),
        subject_matchers=_ci(r'delta.*confirmation', r'flight.*itinerary'),
        body_matchers=_ci(r'\bDL\s*\d{3,4}\b', r'delta\s*air\s*lines', r'delta\s*airlines'),
        weight=0.9,
        extractors=FieldExtractors(
            flights=_ci(r'\bDL\s*\d{3,4}\b'),
        ),
    ),
    PatternDefinition(
        name='Japan Airlines',
        category=Category.AIRLINE,
        sender_matchers=_ci(r'@jal\.com\b', r'@jal\.co\.jp\b', r'japan\s*airlines'),
        subject_matchers=_ci(r'jal.*confirmation', r'japan\s*airlines'),
        body_matchers=_ci(r'\bJL\s*\d{3,4}\b', r'japan\s*airlines'),
        weight=0.9,
        extractors=FieldExtractors(
            flights=_ci(r'\bJL\s*\d{3,4}\b'),
        ),
    ),
)

_ACCOMMODATION_PATTERNS = (
    PatternDefinition(
        name='Booking.com',
        category=Category.BOOKING_PLATFORM,
        sender_matchers=_ci(r'@booking\.com\b', r'booking\.com'),
        subject_matchers=_ci(r'booking.*confirmation', r'reservation.*confirmed', r'예약.*확인'),
        body_matchers=_ci(r'check-in\s*date', r'check-out\s*date', r'체크인', r'체크아웃'),
        weight=0.8,
        extractors=FieldExtractors(
            booking_references=_cs(
                r'(?i:booking\s*number)[:\s]*([A-Z0-9]{6,})\b',
                _KOREAN_BOOKING_NUMBER,
            ),
            dates=_cs(
                r'(?i:check-in)(?:\s*(?i:date))?[:\s]*' + _NUMERIC_DATE,
                r'(?i:check-out)(?:\s*(?i:date))?[:\s]*' + _NUMERIC_DATE,
                r'체크인[:\s]*' + _YMD_DATE,
                r'체크아웃[:\s]*' + _YMD_DATE,
            ),
        ),
    ),
    PatternDefinition(
        name='Expedia',
        category=Category.TRAVEL_AGENCY,
        sender_matchers=_ci(r'@expedia\.com\b', r'@expediamail\.com\b', r'expedia'),
        subject_matchers=_ci(r'expedia.*confirmation', r'trip.*confirmation', r'itinerary'),
        body_matchers=_ci(r'trip\s*number', r'confirmation\s*number'),
        weight=0.8,
        extractors=FieldExtractors(
            booking_references=_cs(r'(?i:trip\s*number)[:\s]*([A-Z0-9]{6,})\b'),
        ),
    ),
    PatternDefinition(
        name='Agoda',
        category=Category.BOOKING_PLATFORM,
        sender_matchers=_ci(r'@agoda\.com\b', r'agoda'),
        subject_matchers=_ci(r'agoda.*booking', r'reservation.*confirmation'),
        body_matchers=_ci(r'booking\s*id', r'reservation\s*number'),
        weight=0.7,
        extractors=FieldExtractors(
            booking_references=_cs(r'(?i:booking\s*id)[:\s]*([A-Z0-9]{6,})\b'),
        ),
    ),
    PatternDefinition(
        name='Hotel Chains',
        category=Category.HOTEL,
        sender_matchers=_ci(r'@(?:[\w-]+\.)*(?:marriott|hilton|hyatt|ihg)\.com\b', r'marriott|hilton|hyatt'),
        subject_matchers=_ci(r'(?:reservation|stay).*confirm', r'호텔.*예약'),
        body_matchers=_ci(r'check-in', r'guest\s*name', r'room\s*type'),
        weight=0.7,
        extractors=FieldExtractors(
            booking_references=_cs(r'(?i:confirmation\s*(?:number|#)?)[:\s]*([A-Z0-9]{6,})\b'),
            dates=_cs(
                r'(?i:check-in)(?:\s*(?i:date))?[:\s]*' + _NUMERIC_DATE,
                r'(?i:check-out)(?:\s*(?i:date))?[:\s]*' + _NUMERIC_DATE,
            ),
            passengers=_cs(r'(?i:guest\s*name)[:\t ]+' + PERSON_NAME),
            hotels=_cs(
                r'\b((?:JW\s+)?(?:Marriott|Hilton|Hyatt|Grand Hyatt|Park Hyatt|Holiday Inn|InterContinental|Crowne Plaza)'
                r"[A-Za-z0-9&' \-]{0,40}?)\s*(?:\n|\r|,|\.|$)",
            ),
        ),
    ),
)

_RENTAL_PATTERNS = (
    PatternDefinition(
        name='Hertz',
        category=Category.RENTAL,
        sender_matchers=_ci(r'@hertz\.com\b', r'hertz'),
        subject_matchers=_ci(r'hertz.*reservation', r'car\s*rental.*confirmation'),
        body_matchers=_ci(r'rental\s*agreement', r'pick-up\s*date', r'return\s*date'),
        weight=0.7,
        extractors=FieldExtractors(
            booking_references=_cs(r'(?i:reservation\s*number)[:\s]*([A-Z0-9]{6,})\b'),
            dates=_cs(
                r'(?i:pick-up)(?:\s*(?i:date))?[:\s]*' + _NUMERIC_DATE,
                r'(?i:return)(?:\s*(?i:date))?[:\s]*' + _NUMERIC_DATE,
            ),
        ),
    ),
)

TRAVEL_PATTERNS = (
    _KOREAN_AIRLINE_PATTERNS
    + _INTERNATIONAL_AIRLINE_PATTERNS
    + _ACCOMMODATION_PATTERNS
    + _RENTAL_PATTERNS
)


# ============================================================================
# REGISTRY CONSTRUCTION
# ============================================================================

def _freeze(mapping):
    return MappingProxyType(dict(mapping))


@lru_cache(maxsize=1)
def default_registry():
    """Registry built from the static catalogue and built-in code tables."""
    return PatternRegistry(
        patterns=TRAVEL_PATTERNS,
        airline_codes=_freeze(AIRLINE_CODES),
        airports=_freeze(AIRPORTS),
        trusted_domains=TRUSTED_SENDER_DOMAINS,
    )


def build_registry(config=None):
    """Build a registry extended by configuration.

    Args:
        config: Object with optional `trusted_domains` (iterable of extra
            sender domains) and `airport_codes_file` (path of a
            "CODE,Name,City,Country,CC" file). None returns the default.

    Returns:
        PatternRegistry
    """
    if config is None:
        return default_registry()

    extra_domains = tuple(
        d.lower().strip() for d in (getattr(config, 'trusted_domains', None) or ()) if d and d.strip()
    )
    codes_file = getattr(config, 'airport_codes_file', None)
    if not extra_domains and not codes_file:
        return default_registry()

    airports = dict(AIRPORTS)
    if codes_file:
        loaded = load_airport_codes(codes_file)
        logger.debug("Loaded %d extra airports from %s", len(loaded), codes_file)
        airports.update(loaded)

    trusted = TRUSTED_SENDER_DOMAINS + tuple(d for d in extra_domains if d not in TRUSTED_SENDER_DOMAINS)
    return PatternRegistry(
        patterns=TRAVEL_PATTERNS,
        airline_codes=_freeze(AIRLINE_CODES),
        airports=_freeze(airports),
        trusted_domains=trusted,
    )
