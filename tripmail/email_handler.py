"""
Email handling: turning RFC 822 messages and .eml files into RawEmail.
"""

import email
import email.errors
import email.header
import logging
import re
from email import policy
from email.utils import parsedate_to_datetime
from pathlib import Path

from .models import RawEmail
from .parser import strip_html_tags

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200


def decode_header_value(value):
    """Decode an email header value (handles encoded headers).

    Args:
        value: Raw header value

    Returns:
        Decoded string
    """
    if not value:
        return ""
    try:
        decoded_parts = email.header.decode_header(str(value))
        return ''.join(
            part.decode(charset or 'utf-8', errors='replace') if isinstance(part, bytes) else part
            for part, charset in decoded_parts
        )
    except (email.errors.HeaderParseError, LookupError) as e:
        logger.debug("Could not decode header %r: %s", value, e)
        return str(value)


# Extra encodings tried after the declared charset, keyed by that charset
_CHARSET_FALLBACKS = {
    'iso-8859-1': ('cp1252',),
    'latin-1': ('iso-8859-1', 'cp1252'),
    'latin1': ('iso-8859-1', 'cp1252'),
    'windows-1252': ('cp1252', 'iso-8859-1'),
    'cp1252': ('iso-8859-1',),
    'ks_c_5601-1987': ('cp949', 'euc-kr'),
    'euc-kr': ('cp949',),
}
_DEFAULT_CHARSETS = ('utf-8', 'cp949', 'iso-8859-1')


def _decode_payload(part):
    """Decode a message part's payload, trying its declared charset first.

    Korean mail often declares euc-kr or ks_c_5601-1987 while actually
    using cp949, so those fall back to cp949.

    Returns:
        Decoded string, or "" when the part has no payload
    """
    payload = part.get_payload(decode=True)
    if not payload:
        return ""

    declared = (part.get_content_charset() or '').lower()
    candidates = ((declared,) if declared else ()) + _CHARSET_FALLBACKS.get(declared, ()) + _DEFAULT_CHARSETS
    for charset in dict.fromkeys(candidates):
        try:
            return payload.decode(charset)
        except (UnicodeDecodeError, LookupError):
            continue
    return payload.decode('utf-8', errors='replace')


def _is_attachment(part):
    disposition = str(part.get("Content-Disposition", "")).lower()
    return "attachment" in disposition or bool(part.get_filename())


def get_email_body(msg):
    """Collect the plain text and HTML bodies and note any attachments.

    When a message carries several parts of the same type the longest one
    is kept.

    Args:
        msg: email.message.Message object

    Returns:
        Tuple of (plain_text_body, html_body, has_attachments)
    """
    if not msg.is_multipart():
        text = _decode_payload(msg)
        if msg.get_content_type() == "text/html":
            return "", text, False
        return text, "", False

    bodies = {"text/plain": "", "text/html": ""}
    has_attachments = False
    for part in msg.walk():
        if part.is_multipart():
            continue
        if _is_attachment(part):
            has_attachments = True
            continue
        content_type = part.get_content_type()
        if content_type in bodies:
            text = _decode_payload(part)
            if len(text) > len(bodies[content_type]):
                bodies[content_type] = text

    return bodies["text/plain"], bodies["text/html"], has_attachments


def parse_email_date(date_str):
    """Parse email date header into datetime.

    Returns:
        datetime object or None if missing or unparsable
    """
    if not date_str:
        return None
    try:
        return parsedate_to_datetime(str(date_str))
    except (TypeError, ValueError):
        logger.debug("Unparsable Date header: %r", date_str)
        return None


def make_snippet(text, length=SNIPPET_LENGTH):
    """Short single-line preview of the body."""
    return re.sub(r'\s+', ' ', text or '').strip()[:length]


def raw_email_from_message(msg, email_id=None):
    """Adapt a parsed message to a RawEmail.

    Plain text is preferred; HTML-only messages are reduced to their visible text.

    Args:
        msg: email.message.Message
        email_id: Id to use when the message has no Message-ID header

    Returns:
        RawEmail
    """
    body, html_body, has_attachments = get_email_body(msg)
    if not body and html_body:
        body = strip_html_tags(html_body)

    message_id = decode_header_value(msg.get("Message-ID", "")).strip().strip("<>")
    return RawEmail(
        id=message_id or email_id or "",
        subject=decode_header_value(msg.get("Subject", "")),
        sender=decode_header_value(msg.get("From", "")),
        recipient=decode_header_value(msg.get("To", "")),
        timestamp=parse_email_date(msg.get("Date")),
        body_text=body,
        snippet=make_snippet(body),
        has_attachments=has_attachments,
    )


def load_eml_file(path):
    """Read an .eml file into a RawEmail (the file stem is the fallback id)."""
    path = Path(path)
    with open(path, 'rb') as f:
        msg = email.message_from_binary_file(f, policy=policy.compat32)
    return raw_email_from_message(msg, email_id=path.stem)


def load_eml_directory(directory):
    """Load every .eml file in a directory, sorted by name.

    Unreadable files are logged and skipped.
    """
    emails = []
    for path in sorted(Path(directory).glob("*.eml")):
        try:
            emails.append(load_eml_file(path))
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
    return emails
