import logging

from mika.log_config import RedactionFilter, RequestIdFilter, SafeFormatter, LOG_FORMAT


def _record(msg, args=()):
    return logging.LogRecord("mika.test", logging.INFO, __file__, 1, msg, args, None)


def test_redaction_masks_email_in_args():
    record = _record("Captured lead %s (%s)", ("abc", "ana.silva@example.com"))

    RedactionFilter().filter(record)

    assert record.getMessage() == "Captured lead abc (a***@example.com)"


def test_redaction_masks_email_in_message():
    record = _record("bounce from bob@example.org")

    RedactionFilter().filter(record)

    assert record.getMessage() == "bounce from b***@example.org"


def test_formatter_tolerates_missing_request_id():
    formatted = SafeFormatter(LOG_FORMAT).format(_record("hello"))

    assert "[request_id=-]" in formatted


def test_request_id_filter_outside_request():
    record = _record("hello")

    assert RequestIdFilter().filter(record) is True
    assert record.request_id == "-"


def test_request_id_filter_inside_request(app):
    with app.test_request_context("/"):
        from flask import g

        g.request_id = "req-9"
        record = _record("hello")
        RequestIdFilter().filter(record)

    assert record.request_id == "req-9"
