"""
Airline code registry and trusted sender domains.

The tables here are static lookup data. They are wrapped read-only into a
PatternRegistry (see patterns.py) and passed to the pipeline explicitly.
"""

import re

# Rows: IATA code, standard name, lowercase spellings seen in senders and bodies
_AIRLINE_ROWS = (
    # Korea
    ('KE', 'Korean Air', ('korean air', 'koreanair', '대한항공')),
    ('OZ', 'Asiana Airlines', ('asiana', 'flyasiana', '아시아나')),
    ('7C', 'Jeju Air', ('jeju air', 'jejuair', '제주항공')),
    ('BX', 'Air Busan', ('air busan', '에어부산')),
    ('TW', "T'way Air", ("t'way", 'twayair', '티웨이')),
    ('LJ', 'Jin Air', ('jin air', 'jinair', '진에어')),
    ('ZE', 'Eastar Jet', ('eastar',)),
    ('RS', 'Air Seoul', ('air seoul', 'flyairseoul')),
    # Japan / China / Taiwan
    ('JL', 'Japan Airlines', ('japan airlines', 'jal.co')),
    ('NH', 'ANA', ('all nippon', 'ana.co.jp')),
    ('CA', 'Air China', ('air china',)),
    ('CZ', 'China Southern', ('china southern', 'csair')),
    ('MU', 'China Eastern', ('china eastern', 'ceair')),
    ('CI', 'China Airlines', ('china airlines', 'china-airlines')),
    ('BR', 'EVA Air', ('eva air', 'evaair')),
    ('CX', 'Cathay Pacific', ('cathay',)),
    # South-East Asia
    ('SQ', 'Singapore Airlines', ('singapore airlines', 'singaporeair')),
    ('TG', 'Thai Airways', ('thai airways', 'thaiairways')),
    ('MH', 'Malaysia Airlines', ('malaysia airlines', 'malaysiaairlines')),
    ('PR', 'Philippine Airlines', ('philippine airlines',)),
    ('VN', 'Vietnam Airlines', ('vietnam airlines', 'vietnamairlines')),
    ('GA', 'Garuda', ('garuda',)),
    ('AK', 'AirAsia', ('airasia',)),
    # US / Canada
    ('UA', 'United', ('united airlines', 'united.com')),
    ('DL', 'Delta', ('delta air', 'delta.com')),
    ('AA', 'American Airlines', ('american airlines', '@aa.com')),
    ('WN', 'Southwest', ('southwest',)),
    ('B6', 'JetBlue', ('jetblue',)),
    ('AS', 'Alaska Airlines', ('alaska airlines', 'alaskaair')),
    ('HA', 'Hawaiian Airlines', ('hawaiian airlines', 'hawaiianairlines')),
    ('AC', 'Air Canada', ('air canada', 'aircanada')),
    # Europe
    ('BA', 'British Airways', ('british airways', 'britishairways')),
    ('LH', 'Lufthansa', ('lufthansa',)),
    ('AF', 'Air France', ('air france', 'airfrance')),
    ('KL', 'KLM', ('klm',)),
    ('VS', 'Virgin Atlantic', ('virgin atlantic',)),
    ('IB', 'Iberia', ('iberia',)),
    ('AY', 'Finnair', ('finnair',)),
    ('LX', 'Swiss', ('swiss international', 'swiss.com')),
    ('OS', 'Austrian', ('austrian airlines',)),
    ('TP', 'TAP Portugal', ('flytap', 'tap air portugal')),
    ('FR', 'Ryanair', ('ryanair',)),
    ('U2', 'easyJet', ('easyjet',)),
    # Middle East
    ('EK', 'Emirates', ('emirates',)),
    ('EY', 'Etihad', ('etihad',)),
    ('QR', 'Qatar Airways', ('qatar airways', 'qatarairways')),
    ('TK', 'Turkish Airlines', ('turkish airlines', 'turkishairlines')),
    # Australia / Pacific
    ('QF', 'Qantas', ('qantas',)),
    ('NZ', 'Air New Zealand', ('air new zealand', 'airnewzealand')),
)

# IATA code -> standard airline name
AIRLINE_CODES = {code: name for code, name, _ in _AIRLINE_ROWS}

# Spelling -> standard name, checked in row order
AIRLINE_NAME_VARIATIONS = {
    spelling: name
    for _, name, spellings in _AIRLINE_ROWS
    for spelling in spellings
}

# Senders whose confirmations are trusted (airlines and large OTAs)
TRUSTED_SENDER_DOMAINS = (
    'koreanair.com', 'flyasiana.com', 'jejuair.net',
    'united.com', 'delta.com', 'jal.com', 'jal.co.jp',
    'aa.com', 'britishairways.com', 'lufthansa.com', 'emirates.com',
    'booking.com', 'expedia.com', 'agoda.com',
    'hotels.com', 'airbnb.com',
)

# A flight number is a 2-3 character carrier prefix followed by 1-4 digits
_FLIGHT_NUMBER_SHAPE = re.compile(r'^([A-Z0-9]{2,3}?)(\d{1,4})$')


def get_airline_for_code(airline_code, airline_codes=AIRLINE_CODES):
    """Get airline name from an IATA code, or None if unknown."""
    if not airline_code:
        return None
    return airline_codes.get(airline_code.upper())


def normalize_flight_number(flight_number):
    """Uppercase a flight number and drop inner whitespace/dashes ("ke 123" -> "KE123")."""
    return re.sub(r'[\s\-]+', '', flight_number or '').upper()


def split_flight_number(flight_number, airline_codes=AIRLINE_CODES):
    """Split a flight number into (airline_code, number) using known prefixes.

    Returns:
        Tuple (code, int number) or None if the shape or prefix is not valid
    """
    normalized = normalize_flight_number(flight_number)
    match = _FLIGHT_NUMBER_SHAPE.match(normalized)
    if not match:
        return None
    code, digits = match.group(1), match.group(2)
    if code not in airline_codes:
        return None
    return code, int(digits)


def extract_airline_from_text(text, from_addr=None):
    """Extract airline name from email text and sender.

    Args:
        text: Email body text
        from_addr: Optional sender address

    Returns:
        Standardized airline name or None
    """
    text_lower = (text or '').lower()
    from_lower = (from_addr or '').lower()

    # Check sender first (most reliable)
    for variation, standard_name in AIRLINE_NAME_VARIATIONS.items():
        if variation in from_lower:
            return standard_name

    for variation, standard_name in AIRLINE_NAME_VARIATIONS.items():
        if variation in text_lower:
            return standard_name

    return None


def is_trusted_domain(sender_domain, trusted_domains=TRUSTED_SENDER_DOMAINS):
    """Check whether a sender domain (or one of its parents) is trusted."""
    domain = (sender_domain or '').lower().strip().rstrip('.')
    if not domain:
        return False
    return any(domain == trusted or domain.endswith('.' + trusted) for trusted in trusted_domains)
