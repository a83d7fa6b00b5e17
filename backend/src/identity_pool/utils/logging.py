"""JSON logging for the identity pool Lambda.

One JSON object per line on stdout, which CloudWatch Logs Insights can
query field by field. Anything passed with ``extra=`` becomes a field under
``"extra"``.

SECURITY NOTES:
- CloudFormation ResponseURLs are pre-signed; log them through mask_url()
- Never log access keys or secret keys returned by stack outputs
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Mapping
from typing import MutableMapping
from typing import Optional
from urllib.parse import urlparse

QUIET_LOGGERS = ("boto3", "botocore", "urllib3")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

request_id: ContextVar[str] = ContextVar("request_id", default="")
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def mask_url(url: str) -> str:
    """Drop the query string, which holds the signature, from a URL.

    Examples:
        >>> mask_url("https://bucket.s3.amazonaws.com/key?X-Amz-Signature=abc")
        'https://bucket.s3.amazonaws.com/key?***'
    """
    if not url:
        return "***"
    parsed = urlparse(url)
    bare = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    if parsed.query:
        return bare + "?***"
    return bare


class StructuredLogFormatter(logging.Formatter):
    """Render records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(self._context_fields())
        if record.levelno >= logging.WARNING:
            entry["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            entry["exception"] = self._exception_fields(record.exc_info)
        extra = self._extra_fields(record)
        if extra:
            entry["extra"] = extra
        return json.dumps(entry, default=str)

    @staticmethod
    def _context_fields() -> dict[str, str]:
        fields = {}
        if request_id.get():
            fields["request_id"] = request_id.get()
        if correlation_id.get():
            fields["correlation_id"] = correlation_id.get()
        return fields

    @staticmethod
    def _exception_fields(exc_info: Any) -> dict[str, Any]:
        exc_type, exc_value, _ = exc_info
        return {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "traceback": traceback.format_exception(*exc_info),
        }

    @staticmethod
    def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }


class ContextLogger(logging.LoggerAdapter):
    """Adapter whose bound fields are added to every call's ``extra``.

    Fields passed at the call site win over bound ones.
    """

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        merged = dict(self.extra or {})
        merged.update(kwargs.get("extra") or {})
        kwargs["extra"] = merged
        return msg, kwargs


def configure_logging(level: Optional[str] = None) -> None:
    """Send JSON logs to stdout at ``level`` (default: ``LOG_LEVEL`` or INFO).

    The handler the Lambda runtime installs on the root logger is replaced.
    """
    root = logging.getLogger()
    root.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())
    for existing in list(root.handlers):
        root.removeHandler(existing)

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(StructuredLogFormatter())
    root.addHandler(stream)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, **bound: Any) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), bound)


def set_request_context(
    req_id: Optional[str] = None,
    corr_id: Optional[str] = None,
) -> None:
    """Bind ids for the current invocation.

    The Lambda request id goes in ``req_id``; the CloudFormation RequestId
    is used as ``corr_id`` so log lines can be tied to the stack event.
    """
    if req_id:
        request_id.set(req_id)
    if corr_id:
        correlation_id.set(corr_id)


def clear_request_context() -> None:
    request_id.set("")
    correlation_id.set("")


def log_custom_resource_event(
    logger: ContextLogger,
    event: Mapping[str, Any],
) -> None:
    """Log the routing fields of a custom resource event.

    Resource properties are left out and the callback URL is masked.
    """
    summary = {
        "request_type": event.get("RequestType"),
        "logical_resource_id": event.get("LogicalResourceId"),
        "physical_resource_id": event.get("PhysicalResourceId"),
        "resource_type": event.get("ResourceType"),
        "stack_id": event.get("StackId"),
        "response_url": mask_url(str(event.get("ResponseURL") or "")),
    }
    logger.info("Custom resource event received", extra={"event": summary})
