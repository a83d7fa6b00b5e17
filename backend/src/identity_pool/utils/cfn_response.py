"""Signal custom resource outcomes back to CloudFormation.

CloudFormation blocks the stack operation until a JSON document is PUT to
the pre-signed S3 URL it sent as ``ResponseURL``. The signature covers an
empty Content-Type, so the request must send exactly that.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from typing import Any
from typing import Mapping
from urllib.parse import urlparse

from identity_pool.utils.logging import get_logger

logger = get_logger(__name__)

SUCCESS = "SUCCESS"
FAILED = "FAILED"

REASON_LIMIT = 256
FALLBACK_PHYSICAL_ID = "custom-resource"
_AWS_HOST_SUFFIXES = (".amazonaws.com", ".amazonaws.com.cn")


def default_physical_id(context: Any) -> str:
    """Return the Lambda log stream name, used when no resource id exists."""
    return getattr(context, "log_stream_name", None) or FALLBACK_PHYSICAL_ID


def default_reason(context: Any) -> str:
    log_stream = getattr(context, "log_stream_name", None)
    if not log_stream:
        return "See logs"
    return f"See the details in CloudWatch Log Stream: {log_stream}"


def response_target(event: Mapping[str, Any]) -> str:
    """Return the callback URL.

    Raises:
        ValueError: If the URL is missing, not https, or not an AWS host.
    """
    url = str(event.get("ResponseURL") or "").strip()
    if not url:
        raise ValueError("Missing ResponseURL in CloudFormation event")
    parsed = urlparse(url)
    if parsed.scheme != "https":
        raise ValueError("CloudFormation ResponseURL must use https")
    if not (parsed.hostname or "").endswith(_AWS_HOST_SUFFIXES):
        raise ValueError("CloudFormation ResponseURL is not an AWS endpoint")
    return url


def build_response_body(
    event: Mapping[str, Any],
    context: Any,
    status: str,
    data: Mapping[str, Any] | None = None,
    physical_resource_id: str | None = None,
    reason: str | None = None,
    no_echo: bool = False,
) -> dict[str, Any]:
    return {
        "Status": status,
        "Reason": (reason or default_reason(context))[:REASON_LIMIT],
        "PhysicalResourceId": physical_resource_id or default_physical_id(context),
        "StackId": event.get("StackId", ""),
        "RequestId": event.get("RequestId", ""),
        "LogicalResourceId": event.get("LogicalResourceId", ""),
        "NoEcho": no_echo,
        "Data": dict(data or {}),
    }


def send_cfn_response(
    event: Mapping[str, Any],
    context: Any,
    status: str,
    data: Mapping[str, Any] | None = None,
    physical_resource_id: str | None = None,
    reason: str | None = None,
    no_echo: bool = False,
) -> dict[str, Any]:
    """PUT the outcome to the event's ResponseURL and return the body sent.

    A transport failure is logged and re-raised so the invocation fails
    visibly instead of leaving the stack waiting silently.
    """
    url = response_target(event)
    body = build_response_body(
        event, context, status, data, physical_resource_id, reason, no_echo
    )
    payload = json.dumps(body, default=str).encode("utf-8")
    request = urllib.request.Request(
        url,
        data=payload,
        method="PUT",
        headers={"Content-Type": "", "Content-Length": str(len(payload))},
    )

    log_fields: dict[str, Any] = {
        "status": status,
        "logical_resource_id": body["LogicalResourceId"],
        "physical_resource_id": body["PhysicalResourceId"],
    }
    try:
        with urllib.request.urlopen(
            request, context=ssl.create_default_context()
        ) as response:
            response.read()
            log_fields["http_status"] = response.status
    except urllib.error.URLError:
        logger.error(
            "Failed to send CloudFormation response",
            extra=log_fields,
            exc_info=True,
        )
        raise
    logger.info("Sent CloudFormation response", extra=log_fields)
    return body
