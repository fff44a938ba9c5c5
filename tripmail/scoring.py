"""
Email classification and confidence scoring.

Each pattern in the registry scores an email on three signals (sender,
subject, body); the best weighted score picks the category and seeds the
confidence. Extraction bonuses reward concrete travel data, and an optional
context pass reweights using metadata pattern matching cannot see.
"""

import logging
from dataclasses import dataclass, replace
from email.utils import parseaddr
from typing import Optional, Tuple

from .airlines import TRUSTED_SENDER_DOMAINS, is_trusted_domain
from .models import ExtractedData, ExtractedRecord, clamp_confidence
from .parser import run_general_extractors, run_specialized_extractors
from .patterns import PatternDefinition

logger = logging.getLogger(__name__)

# Raw score contributed by each matched signal
SIGNAL_WEIGHTS = {
    'sender': 0.4,
    'subject': 0.3,
    'body': 0.3,
}

# Bonuses for extracted data, applied once in this order
EXTRACTION_BONUSES = {
    'flight': 0.2,          # 1+ flight number
    'airports': 0.15,       # 2+ airport codes
    'date': 0.1,            # 1+ date
    'booking': 0.1,         # 1+ booking code
    'corroboration': 0.05,  # per distinct matched signal beyond the first
}

# Metadata adjustments
CONTEXT_ADJUSTMENTS = {
    'trusted_domain': 0.15,
    'attachments': 0.10,
    'forwarded': -0.10,
    'multiple_bookings': -0.05,
}

DISCARD_THRESHOLD = 0.2


# ============================================================================
# CLASSIFICATION
# ============================================================================

@dataclass(frozen=True)
class PatternScore:
    pattern: PatternDefinition
    score: float
    weighted: float
    tags: Tuple[str, ...]


def _any_match(matchers, text):
    return any(m.search(text) for m in matchers)


def email_full_text(email):
    """Subject, body and snippet joined, in original case."""
    return '\n'.join(part for part in (email.subject, email.body_text, email.snippet) if part)


def score_pattern(pattern, email, normalized_text) -> PatternScore:
    """Score one email against one pattern.

    Args:
        pattern: PatternDefinition to test
        email: RawEmail
        normalized_text: Lower-cased subject + body + snippet

    Returns:
        PatternScore with the raw score, weighted score and matched signal tags
    """
    score = 0.0
    tags = []
    signals = (
        ('sender', pattern.sender_matchers, email.sender or ''),
        ('subject', pattern.subject_matchers, email.subject or ''),
        ('body', pattern.body_matchers, normalized_text),
    )
    for source, matchers, text in signals:
        if _any_match(matchers, text):
            score += SIGNAL_WEIGHTS[source]
            tags.append(f"{source}:{pattern.name}")
    return PatternScore(pattern, score, score * pattern.weight, tuple(tags))


def classify_email(email, registry) -> Tuple[Optional[PatternScore], Tuple[str, ...]]:
    """Pick the best-scoring pattern for an email.

    Ties keep the earlier pattern in registry order. A pattern only wins
    with a positive weighted score.

    Returns:
        Tuple of (winning PatternScore or None, all matched signal tags)
    """
    normalized_text = email_full_text(email).lower()
    best = None
    tags = []
    for pattern in registry.patterns:
        result = score_pattern(pattern, email, normalized_text)
        tags.extend(result.tags)
        if result.weighted > (best.weighted if best else 0.0):
            best = result
    return best, tuple(tags)


# ============================================================================
# EXTRACTION AND BONUSES
# ============================================================================

def apply_extraction_bonuses(record):
    """Add the extraction bonuses and fill singular fields still empty.

    Returns:
        New ExtractedRecord with clamped confidence
    """
    data = record.extracted_data
    confidence = record.confidence
    updates = {}

    if data.flights:
        confidence += EXTRACTION_BONUSES['flight']
        if not record.flight_number:
            updates['flight_number'] = data.flights[0]

    if len(data.airports) >= 2:
        confidence += EXTRACTION_BONUSES['airports']
        if not record.departure_airport and not record.arrival_airport:
            updates['departure_airport'] = data.airports[0]
            updates['arrival_airport'] = data.airports[1]

    if data.dates:
        confidence += EXTRACTION_BONUSES['date']
        if not record.departure_date:
            updates['departure_date'] = data.dates[0]
        if len(data.dates) >= 2 and not record.return_date:
            updates['return_date'] = data.dates[1]

    if data.booking_codes:
        confidence += EXTRACTION_BONUSES['booking']
        if not record.booking_reference:
            updates['booking_reference'] = data.booking_codes[0]

    distinct_tags = len(set(data.matched_patterns))
    if distinct_tags > 1:
        confidence += EXTRACTION_BONUSES['corroboration'] * (distinct_tags - 1)

    return replace(record, confidence=clamp_confidence(confidence), **updates)


def extract_travel_info(email, registry, discard_threshold=DISCARD_THRESHOLD):
    """Classify one email and extract a travel record from it.

    Args:
        email: RawEmail
        registry: PatternRegistry
        discard_threshold: Records scoring below this are dropped

    Returns:
        ExtractedRecord or None when the email is not confidently travel related
    """
    text = email_full_text(email)
    default_year = email.timestamp.year if email.timestamp else None

    winner, tags = classify_email(email, registry)
    data = ExtractedData(matched_patterns=tags)
    fields = {}

    # Specialized pass takes priority for singular fields
    if winner:
        specialized, fields = run_specialized_extractors(text, winner.pattern.extractors, registry, default_year)
        data = data.union(specialized)

    general, general_fields = run_general_extractors(text, registry, default_year)
    data = data.union(general)
    for name, value in general_fields.items():
        fields.setdefault(name, value)

    record = ExtractedRecord(
        email_id=email.id,
        subject=email.subject,
        sender=email.sender,
        confidence=winner.weighted if winner else 0.0,
        category=winner.pattern.category if winner else None,
        extracted_data=data,
        **fields,
    )
    record = apply_extraction_bonuses(record)

    if record.confidence < discard_threshold:
        logger.debug("Discarding email %s: confidence %.2f below %.2f",
                     email.id, record.confidence, discard_threshold)
        return None

    logger.debug("Email %s classified as %s (%s) with confidence %.2f",
                 email.id, record.category and record.category.value,
                 winner.pattern.name if winner else "no pattern", record.confidence)
    return record


# ============================================================================
# CONTEXT REWEIGHTING
# ============================================================================

@dataclass(frozen=True)
class EmailContext:
    sender_domain: str = ""
    has_multiple_bookings: bool = False
    is_forwarded_email: bool = False
    has_attachments: bool = False


def get_sender_domain(sender):
    """Domain part of a sender header ("Korean Air <a@koreanair.com>" -> "koreanair.com")."""
    _, addr = parseaddr(sender or '')
    if '@' not in addr:
        return ""
    return addr.rpartition('@')[2].strip().lower()


def build_email_context(email):
    """Derive the reweighting context from an email's metadata."""
    subject = (email.subject or '').strip().lower()
    return EmailContext(
        sender_domain=get_sender_domain(email.sender),
        has_multiple_bookings=(email.body_text or '').lower().count('booking') > 2,
        is_forwarded_email=subject.startswith(('fwd:', 'fw:')),
        has_attachments=bool(email.has_attachments),
    )


def adjust_confidence_by_context(record, context, trusted_domains=TRUSTED_SENDER_DOMAINS):
    """Reweight a record's confidence using email metadata.

    Returns:
        New ExtractedRecord; the input is left untouched
    """
    adjustment = 0.0
    if is_trusted_domain(context.sender_domain, trusted_domains):
        adjustment += CONTEXT_ADJUSTMENTS['trusted_domain']
    if context.has_attachments:
        adjustment += CONTEXT_ADJUSTMENTS['attachments']
    if context.is_forwarded_email:
        adjustment += CONTEXT_ADJUSTMENTS['forwarded']
    if context.has_multiple_bookings:
        adjustment += CONTEXT_ADJUSTMENTS['multiple_bookings']

    if not adjustment:
        return record
    return replace(record, confidence=clamp_confidence(record.confidence + adjustment))
