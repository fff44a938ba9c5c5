"""
Travel field extraction and date normalization.

Two kinds of extraction run over an email's text:
1. Specialized extractors - the regex table of the winning pattern
2. General extractors - category-agnostic matchers for dates, flight
   numbers, airport codes, booking references, passenger and hotel names

Unknown airline prefixes and airport codes are treated as noise and dropped.
Dates are normalized to YYYY-MM-DD with dateutil handling the month-name
forms; anything that cannot be normalized is left out instead of raising.
"""

import logging
import re
from datetime import date, datetime
from html import unescape
from html.parser import HTMLParser

from dateutil import parser as dateutil_parser

from .airlines import normalize_flight_number
from .airports import is_text_airport
from .models import ExtractedData, unique

logger = logging.getLogger(__name__)


# ============================================================================
# DATE NORMALIZATION (using dateutil)
# ============================================================================

# Year first: 2024-08-01, 2024.08.01, 2024/08/01, 2024년 8월 1일, 2024年8月1日
_YMD_PATTERN = re.compile(r'^(\d{4})\s*[-./년年]\s*(\d{1,2})\s*[-./월月]\s*(\d{1,2})\s*[일日]?$')
# US numeric: 08/01/2024
_US_PATTERN = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')
# European numeric: 01.08.2024 or 01-08-2024
_EURO_PATTERN = re.compile(r'^(\d{1,2})[.\-](\d{1,2})[.\-](\d{4})$')
# Year-less Korean/Japanese: 8월 1일, 8月1日
_MONTH_DAY_CJK_PATTERN = re.compile(r'^(\d{1,2})\s*[월月]\s*(\d{1,2})\s*[일日]$')

_MONTH_NAMES = r'(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?'
_MONTH_NAME_PATTERN = re.compile(r'\b' + _MONTH_NAMES, re.IGNORECASE)
_YEAR_PATTERN = re.compile(r'\b\d{4}\b')


def _make_date(year, month, day):
    """Build an ISO date string, or None for impossible dates like 2024-02-30."""
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def normalize_date(text, default_year=None):
    """Convert a date string in any supported format to YYYY-MM-DD.

    Numeric forms separated by "/" are read month-first (US), forms
    separated by "." or "-" with the year last are read day-first.
    Dates without a year ("Aug 1", "8월 1일") resolve only when
    default_year is given.

    Args:
        text: Date text as found in the email
        default_year: Year used for year-less dates

    Returns:
        Normalized date string or None if it cannot be parsed
    """
    if not text:
        return None
    text = text.strip().rstrip('.,')
    if not text:
        return None

    match = _YMD_PATTERN.match(text)
    if match:
        return _make_date(*match.groups())

    match = _US_PATTERN.match(text)
    if match:
        month, day, year = match.groups()
        return _make_date(year, month, day)

    match = _EURO_PATTERN.match(text)
    if match:
        day, month, year = match.groups()
        return _make_date(year, month, day)

    match = _MONTH_DAY_CJK_PATTERN.match(text)
    if match:
        if default_year is None:
            return None
        return _make_date(default_year, *match.groups())

    if not _MONTH_NAME_PATTERN.search(text):
        return None

    has_year = bool(_YEAR_PATTERN.search(text))
    if not has_year and default_year is None:
        return None

    try:
        default = datetime(default_year or 2000, 1, 1)
        dt = dateutil_parser.parse(text, default=default, dayfirst=text[:1].isdigit())
    except (ValueError, OverflowError, TypeError):
        return None
    return dt.date().isoformat()


# ============================================================================
# GENERAL EXTRACTORS
# ============================================================================

# Broad date matchers; overlapping hits are resolved by position in extract_dates
GENERAL_DATE_PATTERNS = (
    re.compile(r'(?<!\d)\d{4}\s*[-./년年]\s*\d{1,2}\s*[-./월月]\s*\d{1,2}(?:\s*[일日])?(?!\d)'),
    re.compile(r'(?<![\d.\-/])\d{1,2}[/.\-]\d{1,2}[/.\-]\d{4}(?!\d)'),
    re.compile(r'\b\d{1,2}(?:st|nd|rd|th)?\s+' + _MONTH_NAMES + r',?\s+\d{4}\b', re.IGNORECASE),
    re.compile(r'\b' + _MONTH_NAMES + r'\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}\b', re.IGNORECASE),
    # Year-less forms, resolved with the email's year
    re.compile(r'\b' + _MONTH_NAMES + r'\s+\d{1,2}(?:st|nd|rd|th)?\b(?![,\s]*\d{4})', re.IGNORECASE),
    re.compile(r'(?<!\d)\d{1,2}\s*[월月]\s*\d{1,2}\s*[일日]'),
)

_GENERAL_FLIGHT_PATTERN = re.compile(r'\b([A-Z]{2,3})\s*(\d{3,4})\b')
_GENERAL_AIRPORT_PATTERN = re.compile(r'\b([A-Z]{3})\b')

# Keyword is case-insensitive, the code itself must be uppercase
_BOOKING_REFERENCE_PATTERNS = (
    re.compile(
        r'(?i:\b(?:confirmation|booking|reference|reservation|record\s*locator))'
        r'\s*(?i:number|code|id|no\.?|#)?[:\s#]*([A-Z0-9]{6,})\b'
    ),
    re.compile(r'(?:예약|확인)\s*(?:번호|코드)?[:\s]*([A-Z0-9]{6,})\b'),
    re.compile(r'\b(?i:pnr)[:\s]*([A-Z0-9]{6,})\b'),
)

# A name is 2-3 capitalised words on one line; a label or a code ends it
_NAME_LABELS = (
    r'(?i:flight|seat|booking|class|confirmation|reservation|ticket|departure'
    r'|arrival|date|gate|terminal|from|to|room|check)\b'
)
_NAME_TOKEN = r'(?!' + _NAME_LABELS + r')[A-Z][A-Za-z]+\b'
PERSON_NAME = r'(' + _NAME_TOKEN + r'(?:/' + _NAME_TOKEN + r'| (?![A-Z]{2,3}\b)' + _NAME_TOKEN + r'){1,2})'

_PASSENGER_PATTERNS = (
    re.compile(r'(?i:\bpassenger(?:\s*name)?|\btravell?er)[:\t ]+' + PERSON_NAME),
    re.compile(r'승객\s*(?:명|이름)?[:\s]*([가-힣]{2,5})'),
)

_HOTEL_PATTERNS = (
    re.compile(r"(?i:\bhotel(?:\s*name)?)\s*:\s*([A-Z][A-Za-z0-9&' \-]{2,60}?)\s*(?:\n|\r|,|\.|$)", re.MULTILINE),
    re.compile(r"(?i:\bstaying at|\baccommodation)[:\s]+([A-Z][A-Za-z0-9&' \-]{2,60}?)\s*(?:\n|\r|,|\.|$)", re.MULTILINE),
)

# Common English words that are NOT booking references
_EXCLUDED_BOOKING_CODES = {
    'CONFIRMATION', 'CONFIRMED', 'CONFIRM', 'BOOKING', 'BOOKED', 'RESERVATION',
    'REFERENCE', 'NUMBER', 'DETAILS', 'DETAIL', 'ITINERARY', 'RECEIPT',
    'AIRLINES', 'AIRWAYS', 'FLIGHT', 'FLIGHTS', 'AIRPORT', 'TRAVEL', 'TICKET',
    'TICKETS', 'BOARDING', 'TERMINAL', 'DEPARTURE', 'ARRIVAL', 'RETURN',
    'HOTEL', 'HOTELS', 'RENTAL', 'HILTON', 'MARRIOTT', 'HERTZ', 'EXPEDIA',
    'AGODA', 'UNITED', 'DELTA', 'KOREAN', 'ASIANA', 'PASSENGER', 'TRAVELER',
    'CUSTOMER', 'SERVICE', 'CENTER', 'ACCOUNT', 'MEMBER', 'STATUS', 'PLEASE',
    'THANKS', 'CHANGE', 'CANCEL', 'MANAGE', 'REVIEW', 'UPDATE', 'SUMMARY',
    'SCHEDULE', 'CHECKIN', 'GUEST', 'PAYMENT', 'INVOICE', 'AMOUNT', 'POLICY',
}


def _looks_like_english_word(code):
    """Check if an all-letter code looks like an English word.

    Real booking references are random; English words have patterns.
    """
    word_endings = ('ING', 'TED', 'LES', 'ERS', 'LLY', 'ION', 'ENT', 'ATE', 'ARD',
                    'GHT', 'NCE', 'EST', 'ANT', 'OUS', 'URE', 'BLE')
    if code.endswith(word_endings):
        return True

    shape = ''.join('V' if c in 'AEIOU' else 'C' for c in code)
    english_shapes = {'CVCCVC', 'CVCVCV', 'CVCVCC', 'CCVCVC', 'CVVCVC', 'CCVCCV', 'CVCCVCC'}
    return shape in english_shapes


def is_plausible_booking_code(code):
    """Check that a captured code is not obviously an English word."""
    if not code or len(code) < 6:
        return False
    code = code.upper()
    if code in _EXCLUDED_BOOKING_CODES:
        return False
    if len(set(code)) == 1:
        return False
    if code.isalpha() and _looks_like_english_word(code):
        return False
    return True


def _is_valid_travel_year(year, email_year):
    """Must be within ±2 years of when the email was sent."""
    return (email_year - 2) <= year <= (email_year + 2)


def extract_dates(text, default_year=None, patterns=GENERAL_DATE_PATTERNS):
    """Find dates in text and normalize them.

    Matches from all patterns are taken in text order; a match overlapping an
    earlier, longer one (e.g. "8월 1일" inside "2024년 8월 1일") is skipped.
    With a default_year, dates more than two years away from it are dropped.

    Returns:
        Tuple of distinct YYYY-MM-DD strings in order of appearance
    """
    if not text:
        return ()

    spans = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = match.group(1) if pattern.groups else match.group(0)
            start = match.start(1) if pattern.groups else match.start()
            spans.append((start, -len(value), value))
    spans.sort()

    found = []
    last_end = -1
    for start, neg_len, value in spans:
        if start < last_end:
            continue
        last_end = start - neg_len
        normalized = normalize_date(value, default_year)
        if not normalized or normalized in found:
            continue
        if default_year is not None and not _is_valid_travel_year(int(normalized[:4]), default_year):
            continue
        found.append(normalized)
    return tuple(found)


def extract_flight_numbers(text, airline_codes):
    """Find flight numbers whose 2-3 letter prefix is a known airline code.

    Returns:
        Tuple of flight numbers without whitespace ("KE 123" -> "KE123")
    """
    found = []
    for match in _GENERAL_FLIGHT_PATTERN.finditer(text or ''):
        code, number = match.group(1), match.group(2)
        if code not in airline_codes:
            continue
        flight = f"{code}{number}"
        if flight not in found:
            found.append(flight)
    return tuple(found)


def extract_airport_codes(text, airports):
    """Find 3-letter airport codes present in the airport registry."""
    found = []
    for match in _GENERAL_AIRPORT_PATTERN.finditer(text or ''):
        code = match.group(1)
        if is_text_airport(code, airports) and code not in found:
            found.append(code)
    return tuple(found)


def extract_booking_references(text, patterns=_BOOKING_REFERENCE_PATTERNS):
    """Find booking references following a confirmation/booking/PNR keyword."""
    found = []
    for pattern in patterns:
        for code in pattern.findall(text or ''):
            if is_plausible_booking_code(code) and code not in found:
                found.append(code)
    return tuple(found)


def _first_capture(patterns, text):
    for pattern in patterns:
        match = pattern.search(text or '')
        if match:
            value = match.group(1).strip()
            if value:
                return value
    return None


def extract_passenger_name(text, patterns=_PASSENGER_PATTERNS):
    """Find a passenger name from a labelled field ("Passenger: Gildong Hong")."""
    return _first_capture(patterns, text)


def extract_hotel_name(text, patterns=_HOTEL_PATTERNS):
    """Find a hotel name from a labelled field ("Hotel: Grand Hyatt Seoul")."""
    return _first_capture(patterns, text)


# ============================================================================
# EXTRACTION PASSES
# ============================================================================

def run_specialized_extractors(text, extractors, registry, default_year=None):
    """Run the winning pattern's extractor table over the email text.

    Args:
        text: Full email text (subject, body, snippet)
        extractors: FieldExtractors of the winning pattern
        registry: PatternRegistry used to filter airport codes
        default_year: Year for year-less dates

    Returns:
        Tuple (ExtractedData, fields) where fields maps singular record
        field names to the first value found for them
    """
    fields = {}

    flights = []
    for pattern in extractors.flights:
        for match in pattern.finditer(text):
            flights.append(normalize_flight_number(match.group(0)))
    flights = unique(flights)
    if flights:
        fields['flight_number'] = flights[0]

    booking_codes = []
    for pattern in extractors.booking_references:
        for match in pattern.finditer(text):
            code = match.group(match.lastindex or 0)
            if is_plausible_booking_code(code):
                booking_codes.append(code)
    booking_codes = unique(booking_codes)
    if booking_codes:
        fields['booking_reference'] = booking_codes[0]

    airports = []
    for pattern in extractors.airports:
        for groups in pattern.findall(text):
            if isinstance(groups, str):
                groups = (groups,)
            airports.extend(code for code in groups if is_text_airport(code, registry.airports))
    airports = unique(airports)
    if len(airports) >= 2:
        fields['departure_airport'] = airports[0]
        fields['arrival_airport'] = airports[1]

    dates = extract_dates(text, default_year, patterns=extractors.dates) if extractors.dates else ()

    passenger = _first_capture(extractors.passengers, text)
    if passenger:
        fields['passenger_name'] = passenger
    hotel = _first_capture(extractors.hotels, text)
    if hotel:
        fields['hotel_name'] = hotel

    data = ExtractedData(dates=dates, airports=airports, flights=flights, booking_codes=booking_codes)
    return data, fields


def run_general_extractors(text, registry, default_year=None):
    """Run the category-agnostic extractors over the email text.

    Returns:
        Tuple (ExtractedData, fields) like run_specialized_extractors; only
        passenger and hotel names are reported as fields here
    """
    data = ExtractedData(
        dates=extract_dates(text, default_year),
        airports=extract_airport_codes(text, registry.airports),
        flights=extract_flight_numbers(text, registry.airline_codes),
        booking_codes=extract_booking_references(text),
    )
    fields = {}
    passenger = extract_passenger_name(text)
    if passenger:
        fields['passenger_name'] = passenger
    hotel = extract_hotel_name(text)
    if hotel:
        fields['hotel_name'] = hotel
    return data, fields


# ============================================================================
# HTML TEXT EXTRACTION (using native Python html.parser)
# ============================================================================

class _TextExtractor(HTMLParser):
    """Extract visible text from HTML using Python's native html.parser."""

    SKIP_TAGS = frozenset({'script', 'style', 'head', 'meta', 'link', 'noscript', 'svg', 'path'})
    BLOCK_TAGS = frozenset({'p', 'div', 'br', 'tr', 'li', 'table', 'h1', 'h2', 'h3', 'h4'})

    def __init__(self):
        super().__init__()
        self.text_parts = []
        self.skip_depth = 0

    def handle_starttag(self, tag, attrs):
        tag = tag.lower()
        if tag in self.SKIP_TAGS:
            self.skip_depth += 1
        elif tag in self.BLOCK_TAGS:
            self.text_parts.append('\n')

    def handle_endtag(self, tag):
        if tag.lower() in self.SKIP_TAGS and self.skip_depth > 0:
            self.skip_depth -= 1

    def handle_data(self, data):
        if self.skip_depth == 0:
            text = data.strip()
            if text:
                self.text_parts.append(text)

    def get_text(self):
        return ' '.join(self.text_parts)


def strip_html_tags(html_text):
    """Remove HTML tags and return only visible text, one line per block."""
    if not html_text:
        return ""

    parser = _TextExtractor()
    parser.feed(html_text)
    parser.close()
    text = unescape(parser.get_text())
    # Normalize whitespace but keep block line breaks
    text = re.sub(r'[ \t\r\f\v]+', ' ', text)
    text = re.sub(r' ?\n ?', '\n', text)
    text = re.sub(r'\n{2,}', '\n', text)
    return text.strip()
