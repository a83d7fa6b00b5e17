"""Lambda handler for the Cognito identity pool custom resources.

SECURITY NOTES:
- The pre-signed ResponseURL is logged without its query string
- Failures are reported with the error type and message only
"""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional

from botocore.exceptions import ClientError
from pydantic import ValidationError as SchemaValidationError

from identity_pool.exceptions import IdentityPoolError
from identity_pool.exceptions import UnknownOperationError
from identity_pool.models import CustomResourceEvent
from identity_pool.models import CustomResourceResult
from identity_pool.resources import dispatch
from identity_pool.services.aws_clients import get_cognito_identity_client
from identity_pool.utils.cfn_response import FAILED
from identity_pool.utils.cfn_response import SUCCESS
from identity_pool.utils.cfn_response import send_cfn_response
from identity_pool.utils.logging import clear_request_context
from identity_pool.utils.logging import configure_logging
from identity_pool.utils.logging import get_logger
from identity_pool.utils.logging import log_custom_resource_event
from identity_pool.utils.logging import set_request_context

configure_logging()
logger = get_logger(__name__)

_MAX_MESSAGE_LENGTH = 200


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle CloudFormation custom resource events for identity pools."""
    set_request_context(
        getattr(context, "aws_request_id", None),
        str(event.get("RequestId") or ""),
    )
    try:
        log_custom_resource_event(logger, event)
        return handle_event(event, context).to_dict()
    finally:
        clear_request_context()


def handle_event(event: Mapping[str, Any], context: Any) -> CustomResourceResult:
    """Dispatch a custom resource event and signal the outcome.

    Every failure is reported through the callback. Only a failure to
    deliver the callback itself propagates.
    """
    try:
        request = CustomResourceEvent.model_validate(dict(event))
    except SchemaValidationError as exc:
        logger.error(
            "Invalid custom resource event",
            extra={"error_count": exc.error_count()},
        )
        return _respond(
            event,
            context,
            FAILED,
            {"message": "Invalid custom resource event"},
            event.get("PhysicalResourceId") or None,
            reason=_failure_reason(exc),
        )

    try:
        outcome = dispatch(request, get_cognito_identity_client())
    except UnknownOperationError as exc:
        logger.warning(
            "Unknown operation",
            extra={
                "request_type": request.request_type,
                "logical_resource_id": request.logical_resource_id,
                "resource_type": request.resource_type,
            },
        )
        return _respond(
            event, context, FAILED, exc.to_dict(), request.physical_resource_id
        )
    except IdentityPoolError as exc:
        logger.error(
            "Invalid resource properties",
            extra={"error_message": exc.message},
        )
        return _respond(
            event,
            context,
            FAILED,
            exc.to_dict(),
            request.physical_resource_id,
            reason=_failure_reason(exc),
        )
    except ClientError as exc:
        error = exc.response.get("Error", {})
        logger.error(
            "Cognito Identity request failed",
            extra={"error_code": error.get("Code"), "request_type": request.request_type},
            exc_info=True,
        )
        return _respond(
            event,
            context,
            FAILED,
            {"message": str(exc), "code": error.get("Code", "")},
            request.physical_resource_id,
            reason=_failure_reason(exc),
        )
    except Exception as exc:
        logger.error(
            "Custom resource request failed",
            extra={"error_type": type(exc).__name__},
            exc_info=True,
        )
        return _respond(
            event,
            context,
            FAILED,
            {"message": str(exc)},
            request.physical_resource_id,
            reason=_failure_reason(exc),
        )

    return _respond(event, context, SUCCESS, outcome.data, outcome.physical_resource_id)


def _respond(
    event: Mapping[str, Any],
    context: Any,
    status: str,
    data: Mapping[str, Any],
    physical_resource_id: Optional[str],
    reason: Optional[str] = None,
) -> CustomResourceResult:
    body = send_cfn_response(
        event,
        context,
        status,
        data,
        physical_resource_id,
        reason,
    )
    return CustomResourceResult(
        status=body["Status"],
        physical_resource_id=body["PhysicalResourceId"],
        data=body["Data"],
    )


def _failure_reason(exc: Exception) -> str:
    message = str(exc)
    if len(message) > _MAX_MESSAGE_LENGTH:
        message = message[:_MAX_MESSAGE_LENGTH]
    return f"{type(exc).__name__}: {message}"
