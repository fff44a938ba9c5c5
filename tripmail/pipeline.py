"""
Pipeline entry points.

analyze_travel_emails() turns a batch of RawEmail into reviewed-ready
ExtractedRecords; build_travel_periods() and suggest_round_trips() take the
records a reviewer accepted the rest of the way. The registry and config are
passed in explicitly; nothing here does I/O.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from .config import PipelineConfig
from .merge import deduplicate_records
from .patterns import build_registry, default_registry
from .periods import create_travel_periods, flight_legs_from_record, remove_duplicate_periods
from .roundtrip import RoundTripDetector
from .scoring import adjust_confidence_by_context, build_email_context, extract_travel_info
from .validation import prioritize_records, sort_records

logger = logging.getLogger(__name__)


def extract_records(emails, registry, max_workers=1, discard_threshold=0.2):
    """Classify and extract every email, keeping input order.

    Emails are independent of each other, so with max_workers > 1 they are
    processed on a thread pool sharing the read-only registry.

    Returns:
        List of (RawEmail, ExtractedRecord) for emails that produced a record
    """
    emails = list(emails)

    def extract(email):
        return extract_travel_info(email, registry, discard_threshold)

    if max_workers > 1 and len(emails) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            records = list(executor.map(extract, emails))
    else:
        records = [extract(email) for email in emails]

    return [(email, record) for email, record in zip(emails, records) if record is not None]


def analyze_travel_emails(emails, registry=None, config=None, today=None):
    """Run the full email analysis on a batch.

    Steps: extraction, context reweighting (optional), consistency penalty,
    discard below threshold, trip deduplication, sorting.

    Args:
        emails: Iterable of RawEmail
        registry: PatternRegistry (defaults to one built from config)
        config: PipelineConfig (defaults to all defaults)
        today: Reference date for consistency checks

    Returns:
        Tuple of ExtractedRecord sorted by confidence, best first
    """
    config = config or PipelineConfig()
    registry = registry or build_registry(config)

    extracted = extract_records(emails, registry, config.max_workers, config.discard_threshold)
    logger.info("Extracted %d candidate records", len(extracted))

    if config.apply_context:
        candidates = [
            adjust_confidence_by_context(record, build_email_context(email), registry.trusted_domains)
            for email, record in extracted
        ]
    else:
        candidates = [record for _, record in extracted]

    candidates = prioritize_records(
        candidates, registry, today,
        penalty=config.consistency_penalty,
        threshold=config.discard_threshold,
        past_window_days=config.past_window_days,
        future_window_years=config.future_window_years,
    )

    records = deduplicate_records(candidates, config.merge_bonus, config.merge_bonus_policy)
    logger.info("%d records after merging duplicates", len(records))
    return sort_records(records)


def build_travel_periods(accepted_records, registry=None, extracted_at=None):
    """Build deduplicated travel periods from records a reviewer accepted.

    Returns:
        Tuple of TravelPeriod sorted by entry date
    """
    registry = registry or default_registry()
    legs = []
    for record in accepted_records:
        record_legs = flight_legs_from_record(record, registry)
        if not record_legs:
            logger.debug("Record %s has no complete flight, no period created", record.email_id)
            continue
        legs.extend(record_legs)
    return remove_duplicate_periods(create_travel_periods(legs, extracted_at))


def suggest_round_trips(periods, detector=None, config=None):
    """Find round-trip merge suggestions among travel periods.

    Pass the same detector on later calls so pairs already suggested are
    not suggested again.
    """
    if detector is None:
        config = config or PipelineConfig()
        detector = RoundTripDetector(window_days=config.round_trip_window_days)
    return detector.detect(periods)
