"""
tests/test_email_handler.py — reading .eml files into RawEmail.

Run with: pytest tests/test_email_handler.py -v
"""

from datetime import datetime, timezone
from email.header import Header
from email.message import EmailMessage

import pytest

from tripmail.email_handler import (
    decode_header_value,
    load_eml_directory,
    load_eml_file,
    make_snippet,
    parse_email_date,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _message(subject="대한항공 예약 확인", body="Flight KE017 ICN → LAX", message_id="<abc123@koreanair.com>"):
    msg = EmailMessage()
    msg["From"] = "Korean Air <noreply@koreanair.com>"
    msg["To"] = "traveler@example.com"
    msg["Subject"] = subject
    msg["Date"] = "Sat, 20 Jul 2024 09:30:00 +0000"
    if message_id:
        msg["Message-ID"] = message_id
    msg.set_content(body)
    return msg


def _write(path, msg):
    path.write_bytes(bytes(msg))
    return path


# ---------------------------------------------------------------------------
# Unit tests — headers and helpers
# ---------------------------------------------------------------------------

def test_decode_encoded_header() -> None:
    encoded = Header("대한항공 예약", "utf-8").encode()
    assert decode_header_value(encoded) == "대한항공 예약"


def test_decode_plain_and_empty_headers() -> None:
    assert decode_header_value("Booking confirmation") == "Booking confirmation"
    assert decode_header_value(None) == ""


def test_parse_email_date() -> None:
    assert parse_email_date("Sat, 20 Jul 2024 09:30:00 +0000") == datetime(2024, 7, 20, 9, 30, tzinfo=timezone.utc)
    assert parse_email_date("not a date") is None
    assert parse_email_date(None) is None


def test_make_snippet_collapses_whitespace() -> None:
    assert make_snippet("Flight\n\n  KE017\tICN") == "Flight KE017 ICN"
    assert len(make_snippet("x" * 500)) == 200


# ---------------------------------------------------------------------------
# Unit tests — .eml files
# ---------------------------------------------------------------------------

def test_load_plain_text_email(tmp_path) -> None:
    email = load_eml_file(_write(tmp_path / "one.eml", _message()))

    assert email.id == "abc123@koreanair.com"
    assert "대한항공" in email.subject
    assert email.sender == "Korean Air <noreply@koreanair.com>"
    assert email.recipient == "traveler@example.com"
    assert email.timestamp.date().isoformat() == "2024-07-20"
    assert "KE017" in email.body_text
    assert email.snippet == "Flight KE017 ICN → LAX"
    assert email.has_attachments is False


def test_file_stem_is_fallback_id(tmp_path) -> None:
    email = load_eml_file(_write(tmp_path / "no-id.eml", _message(message_id=None)))
    assert email.id == "no-id"


def test_html_only_email_is_reduced_to_text(tmp_path) -> None:
    msg = _message()
    msg.set_content("<html><body><p>Flight KE017</p><p>ICN to LAX</p></body></html>", subtype="html")

    email = load_eml_file(_write(tmp_path / "html.eml", msg))

    assert email.body_text == "Flight KE017\nICN to LAX"


def test_attachment_is_detected_and_not_read_as_body(tmp_path) -> None:
    msg = _message(body="E-ticket attached")
    msg.add_attachment(b"%PDF-1.4 fake", maintype="application", subtype="pdf", filename="eticket.pdf")

    email = load_eml_file(_write(tmp_path / "attach.eml", msg))

    assert email.has_attachments is True
    assert email.body_text.strip() == "E-ticket attached"


def test_load_directory_sorted_and_eml_only(tmp_path) -> None:
    _write(tmp_path / "b.eml", _message(message_id="<b@x>"))
    _write(tmp_path / "a.eml", _message(message_id="<a@x>"))
    (tmp_path / "notes.txt").write_text("not an email", encoding="utf-8")

    emails = load_eml_directory(tmp_path)

    assert [e.id for e in emails] == ["a@x", "b@x"]


@pytest.mark.parametrize("charset", ["utf-8", "euc-kr"])
def test_korean_body_charsets(tmp_path, charset) -> None:
    msg = _message(body="예약번호: ABC123")
    msg.set_content("예약번호: ABC123", charset=charset)

    email = load_eml_file(_write(tmp_path / "kr.eml", msg))

    assert "예약번호: ABC123" in email.body_text
