"""
Airport codes data and utilities.

Holds the built-in airport table (IATA code -> AirportInfo), loads extra
airports from a codes file, and validates codes found in email text.
"""

import logging
from pathlib import Path

from .models import AirportInfo

logger = logging.getLogger(__name__)

# Common English words that happen to be 3 letters - never treated as airports
# when scanning free text, even if an airport with that code exists
EXCLUDED_CODES = {
    # Common words
    'THE', 'AND', 'FOR', 'ARE', 'BUT', 'NOT', 'YOU', 'ALL', 'CAN', 'HAD',
    'HER', 'WAS', 'ONE', 'OUR', 'OUT', 'DAY', 'GET', 'HAS', 'HIM', 'HIS',
    'HOW', 'ITS', 'MAY', 'NEW', 'NOW', 'OLD', 'SEE', 'WAY', 'WHO', 'BOY',
    'DID', 'SAY', 'SHE', 'TOO', 'USE', 'AIR', 'FLY', 'RUN', 'TRY', 'CAR',
    'END', 'PRE', 'PRO', 'VIA', 'PER', 'NET', 'WEB', 'APP', 'API', 'URL',
    'USA', 'PDF', 'JPG', 'PNG', 'GIF', 'ADD', 'BAG', 'BUS', 'DUE', 'FAX',
    'KEY', 'LOG', 'MAP', 'OFF', 'PAY', 'REF', 'SET', 'TAX', 'TOP', 'YES',
    # Email/travel specific words that aren't airports
    'COM', 'ORG', 'EDU', 'GOV', 'NET', 'PNR', 'VAT', 'FEE', 'ETA', 'ETD',
    'MON', 'TUE', 'WED', 'THU', 'FRI', 'SAT', 'SUN',  # Days
    'JAN', 'FEB', 'MAR', 'APR', 'JUN', 'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC',  # Months
    'KRW', 'USD', 'EUR', 'JPY', 'CNY', 'GBP',  # Currencies
}

# Built-in airport table. Rows: code, name, city, country, ISO country code
_AIRPORT_ROWS = (
    # Korea
    ('ICN', 'Incheon International Airport', 'Seoul', 'South Korea', 'KR'),
    ('GMP', 'Gimpo International Airport', 'Seoul', 'South Korea', 'KR'),
    ('CJU', 'Jeju International Airport', 'Jeju', 'South Korea', 'KR'),
    ('PUS', 'Gimhae International Airport', 'Busan', 'South Korea', 'KR'),
    ('TAE', 'Daegu International Airport', 'Daegu', 'South Korea', 'KR'),
    # Japan
    ('NRT', 'Narita International Airport', 'Tokyo', 'Japan', 'JP'),
    ('HND', 'Haneda Airport', 'Tokyo', 'Japan', 'JP'),
    ('KIX', 'Kansai International Airport', 'Osaka', 'Japan', 'JP'),
    ('NGO', 'Chubu Centrair International Airport', 'Nagoya', 'Japan', 'JP'),
    ('FUK', 'Fukuoka Airport', 'Fukuoka', 'Japan', 'JP'),
    ('CTS', 'New Chitose Airport', 'Sapporo', 'Japan', 'JP'),
    # China / Hong Kong / Taiwan
    ('PEK', 'Beijing Capital International Airport', 'Beijing', 'China', 'CN'),
    ('PVG', 'Shanghai Pudong International Airport', 'Shanghai', 'China', 'CN'),
    ('CAN', 'Guangzhou Baiyun International Airport', 'Guangzhou', 'China', 'CN'),
    ('HKG', 'Hong Kong International Airport', 'Hong Kong', 'Hong Kong', 'HK'),
    ('TPE', 'Taiwan Taoyuan International Airport', 'Taipei', 'Taiwan', 'TW'),
    # South-East Asia
    ('BKK', 'Suvarnabhumi Airport', 'Bangkok', 'Thailand', 'TH'),
    ('SIN', 'Singapore Changi Airport', 'Singapore', 'Singapore', 'SG'),
    ('KUL', 'Kuala Lumpur International Airport', 'Kuala Lumpur', 'Malaysia', 'MY'),
    ('MNL', 'Ninoy Aquino International Airport', 'Manila', 'Philippines', 'PH'),
    ('SGN', 'Tan Son Nhat International Airport', 'Ho Chi Minh City', 'Vietnam', 'VN'),
    ('HAN', 'Noi Bai International Airport', 'Hanoi', 'Vietnam', 'VN'),
    ('DAD', 'Da Nang International Airport', 'Da Nang', 'Vietnam', 'VN'),
    ('CGK', 'Soekarno-Hatta International Airport', 'Jakarta', 'Indonesia', 'ID'),
    ('DPS', 'Ngurah Rai International Airport', 'Bali', 'Indonesia', 'ID'),
    # United States / Canada
    ('LAX', 'Los Angeles International Airport', 'Los Angeles', 'United States', 'US'),
    ('JFK', 'John F. Kennedy International Airport', 'New York', 'United States', 'US'),
    ('EWR', 'Newark Liberty International Airport', 'Newark', 'United States', 'US'),
    ('SFO', 'San Francisco International Airport', 'San Francisco', 'United States', 'US'),
    ('ORD', "O'Hare International Airport", 'Chicago', 'United States', 'US'),
    ('SEA', 'Seattle-Tacoma International Airport', 'Seattle', 'United States', 'US'),
    ('ATL', 'Hartsfield-Jackson Atlanta International Airport', 'Atlanta', 'United States', 'US'),
    ('DFW', 'Dallas/Fort Worth International Airport', 'Dallas', 'United States', 'US'),
    ('IAD', 'Washington Dulles International Airport', 'Washington', 'United States', 'US'),
    ('BOS', 'Logan International Airport', 'Boston', 'United States', 'US'),
    ('LAS', 'Harry Reid International Airport', 'Las Vegas', 'United States', 'US'),
    ('HNL', 'Daniel K. Inouye International Airport', 'Honolulu', 'United States', 'US'),
    ('YVR', 'Vancouver International Airport', 'Vancouver', 'Canada', 'CA'),
    ('YYZ', 'Toronto Pearson International Airport', 'Toronto', 'Canada', 'CA'),
    # Europe
    ('LHR', 'Heathrow Airport', 'London', 'United Kingdom', 'GB'),
    ('LGW', 'Gatwick Airport', 'London', 'United Kingdom', 'GB'),
    ('CDG', 'Charles de Gaulle Airport', 'Paris', 'France', 'FR'),
    ('FRA', 'Frankfurt Airport', 'Frankfurt', 'Germany', 'DE'),
    ('MUC', 'Munich Airport', 'Munich', 'Germany', 'DE'),
    ('AMS', 'Amsterdam Airport Schiphol', 'Amsterdam', 'Netherlands', 'NL'),
    ('FCO', 'Leonardo da Vinci Airport', 'Rome', 'Italy', 'IT'),
    ('MXP', 'Milan Malpensa Airport', 'Milan', 'Italy', 'IT'),
    ('MAD', 'Adolfo Suarez Madrid-Barajas Airport', 'Madrid', 'Spain', 'ES'),
    ('BCN', 'Barcelona-El Prat Airport', 'Barcelona', 'Spain', 'ES'),
    ('ZRH', 'Zurich Airport', 'Zurich', 'Switzerland', 'CH'),
    ('VIE', 'Vienna International Airport', 'Vienna', 'Austria', 'AT'),
    ('PRG', 'Vaclav Havel Airport Prague', 'Prague', 'Czech Republic', 'CZ'),
    ('HEL', 'Helsinki Airport', 'Helsinki', 'Finland', 'FI'),
    ('IST', 'Istanbul Airport', 'Istanbul', 'Turkey', 'TR'),
    # Middle East / Oceania
    ('DXB', 'Dubai International Airport', 'Dubai', 'United Arab Emirates', 'AE'),
    ('DOH', 'Hamad International Airport', 'Doha', 'Qatar', 'QA'),
    ('SYD', 'Sydney Kingsford Smith Airport', 'Sydney', 'Australia', 'AU'),
    ('MEL', 'Melbourne Airport', 'Melbourne', 'Australia', 'AU'),
    ('AKL', 'Auckland Airport', 'Auckland', 'New Zealand', 'NZ'),
)

AIRPORTS = {row[0]: AirportInfo(*row) for row in _AIRPORT_ROWS}


def load_airport_codes(codes_file):
    """Load extra airports from a codes file.

    Each line is "CODE,Name[,City,Country,CountryCode]". Malformed lines are
    skipped; a missing or unreadable file yields an empty dict.

    Args:
        codes_file: Path to the airport codes file

    Returns:
        Dict of code -> AirportInfo
    """
    airports = {}
    path = Path(codes_file)
    if not path.exists():
        logger.warning("Airport codes file not found: %s", path)
        return airports

    try:
        with open(path, 'r', encoding='utf-8', errors='ignore') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or ',' not in line:
                    continue
                parts = [part.strip() for part in line.split(',')]
                code = parts[0].upper()
                if len(code) != 3 or not code.isalpha():
                    continue
                parts += [''] * (5 - len(parts))
                airports[code] = AirportInfo(code, parts[1], parts[2], parts[3], parts[4].upper())
    except OSError as e:
        logger.warning("Could not read airport codes file %s: %s", path, e)

    return airports


def get_airport_display(code, airports=AIRPORTS):
    """Get display string for airport code, like "ICN (Seoul)" or just "XYZ"."""
    info = airports.get(code)
    if info and info.city:
        return f"{code} ({info.city})"
    return code


def is_valid_airport(code, airports=AIRPORTS):
    """Check that a code is three uppercase letters and a known airport."""
    return (
        isinstance(code, str)
        and len(code) == 3
        and code.isalpha()
        and code.isupper()
        and code in airports
    )


def is_text_airport(code, airports=AIRPORTS):
    """Check a code found in free text: known airport and not an excluded word."""
    return is_valid_airport(code, airports) and code not in EXCLUDED_CODES
