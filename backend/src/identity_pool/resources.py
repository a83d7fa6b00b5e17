"""Identity pool resource operations.

Each CloudFormation (resource tag, request type) pair maps to exactly one
Cognito Identity call. The operations are thin: they shape parameters
from the resource ``Options``, make the call and hand back what should be
reported to CloudFormation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable
from typing import Optional

from identity_pool.exceptions import UnknownOperationError
from identity_pool.exceptions import ValidationError
from identity_pool.models import CustomResourceEvent
from identity_pool.models import RequestType
from identity_pool.models import ResourceTag
from identity_pool.utils.logging import get_logger
from identity_pool.utils.parsers import decode_json_properties
from identity_pool.utils.parsers import strip_response_metadata

logger = get_logger(__name__)

# Shape of an IdentityPoolId, e.g. us-east-1:1a2b3c4d-....
IDENTITY_POOL_ID_PATTERN = re.compile(r"^[\w-]+:[0-9a-f-]+$")


@dataclass
class ResourceOutcome:
    """Response data plus the physical id to report.

    A ``physical_resource_id`` of None lets the responder fall back to the
    Lambda log stream name.
    """

    data: dict[str, Any] = field(default_factory=dict)
    physical_resource_id: Optional[str] = None


Operation = Callable[[CustomResourceEvent, Any], ResourceOutcome]


def _existing_pool_id(event: CustomResourceEvent) -> str:
    if not event.physical_resource_id:
        raise ValidationError(
            "PhysicalResourceId is required to modify an identity pool",
            field="PhysicalResourceId",
        )
    return event.physical_resource_id


def create_identity_pool(event: CustomResourceEvent, client: Any) -> ResourceOutcome:
    params = decode_json_properties(event.options)
    logger.info(
        "Creating identity pool",
        extra={"identity_pool_name": params.get("IdentityPoolName")},
    )
    data = strip_response_metadata(client.create_identity_pool(**params))
    return ResourceOutcome(data, data.get("IdentityPoolId"))


def update_identity_pool(event: CustomResourceEvent, client: Any) -> ResourceOutcome:
    params = decode_json_properties(event.options)
    params["IdentityPoolId"] = _existing_pool_id(event)
    logger.info(
        "Updating identity pool",
        extra={"identity_pool_id": params["IdentityPoolId"]},
    )
    data = strip_response_metadata(client.update_identity_pool(**params))
    return ResourceOutcome(data, data.get("IdentityPoolId"))


def delete_identity_pool(event: CustomResourceEvent, client: Any) -> ResourceOutcome:
    """Delete the pool named by the physical id.

    A failed Create reports the log stream name as its physical id, so a
    rollback Delete carrying anything that is not a pool id succeeds
    without calling the API.
    """
    pool_id = _existing_pool_id(event)
    if not IDENTITY_POOL_ID_PATTERN.match(pool_id):
        logger.info(
            "Physical id is not an identity pool id, nothing to delete",
            extra={"physical_resource_id": pool_id},
        )
        return ResourceOutcome({}, pool_id)
    logger.info("Deleting identity pool", extra={"identity_pool_id": pool_id})
    data = strip_response_metadata(client.delete_identity_pool(IdentityPoolId=pool_id))
    return ResourceOutcome(data, pool_id)


def set_identity_pool_roles(
    event: CustomResourceEvent, client: Any
) -> ResourceOutcome:
    params = event.options
    logger.info(
        "Setting identity pool roles",
        extra={
            "identity_pool_id": params.get("IdentityPoolId"),
            "roles": sorted((params.get("Roles") or {}).keys()),
        },
    )
    data = strip_response_metadata(client.set_identity_pool_roles(**params))
    return ResourceOutcome(data, event.physical_resource_id)


def release_identity_pool_roles(
    event: CustomResourceEvent, client: Any
) -> ResourceOutcome:
    # Role mappings go away with the pool; nothing to call.
    logger.info("Delete request received, leaving identity pool roles in place")
    return ResourceOutcome({}, event.physical_resource_id)


OPERATIONS: dict[tuple[ResourceTag, RequestType], Operation] = {
    (ResourceTag.IDENTITY_POOL, RequestType.CREATE): create_identity_pool,
    (ResourceTag.IDENTITY_POOL, RequestType.UPDATE): update_identity_pool,
    (ResourceTag.IDENTITY_POOL, RequestType.DELETE): delete_identity_pool,
    (ResourceTag.IDENTITY_POOL_ROLES, RequestType.CREATE): set_identity_pool_roles,
    (ResourceTag.IDENTITY_POOL_ROLES, RequestType.UPDATE): set_identity_pool_roles,
    (ResourceTag.IDENTITY_POOL_ROLES, RequestType.DELETE): release_identity_pool_roles,
}


def resolve_operation(event: CustomResourceEvent) -> Operation:
    """Return the operation for the event.

    Raises:
        UnknownOperationError: If the request type or resource is unsupported.
    """
    tag = event.resource_tag
    lifecycle = event.lifecycle
    if tag is None or lifecycle is None:
        raise UnknownOperationError(event.logical_resource_id, event.request_type)
    return OPERATIONS[(tag, lifecycle)]


def dispatch(event: CustomResourceEvent, client: Any) -> ResourceOutcome:
    """Run the operation matching the event against the given client."""
    operation = resolve_operation(event)
    return operation(event, client)
