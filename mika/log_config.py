"""Logging: safe request-id + email redaction."""
import logging
import re

from flask import g, has_request_context

LOG_FORMAT = (
    "%(asctime)s %(levelname)s [%(name)s] "
    "[request_id=%(request_id)s] %(message)s"
)


class SafeFormatter(logging.Formatter):
    def format(self, record):
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return super().format(record)


class RequestIdFilter(logging.Filter):
    def filter(self, record):
        if has_request_context():
            record.request_id = getattr(g, "request_id", "-")
        else:
            record.request_id = "-"
        return True


class RedactionFilter(logging.Filter):
    """Mask the local part of email addresses in log messages and args."""

    _email = re.compile(r"\b([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")

    def _redact(self, value):
        if isinstance(value, str):
            return self._email.sub(r"\1***@\2", value)
        return value

    def filter(self, record):
        try:
            record.msg = self._redact(record.msg)
            if isinstance(record.args, tuple):
                record.args = tuple(self._redact(arg) for arg in record.args)
            elif isinstance(record.args, dict):
                record.args = {key: self._redact(val) for key, val in record.args.items()}
        except Exception:
            # never break logging if redact fails
            pass
        return True


def configure_logging(level="INFO"):
    """Configure the root logger once; repeated calls only adjust the level."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if any(getattr(handler, "_mika", False) for handler in root_logger.handlers):
        return root_logger

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(SafeFormatter(LOG_FORMAT))
    stream_handler.addFilter(RequestIdFilter())
    stream_handler.addFilter(RedactionFilter())
    stream_handler._mika = True
    root_logger.addHandler(stream_handler)
    return root_logger
