"""Pydantic models for CloudFormation custom resource requests."""

from __future__ import annotations

import enum
from typing import Any
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from identity_pool.exceptions import ValidationError

CUSTOM_RESOURCE_PREFIX = "Custom::"


class RequestType(str, enum.Enum):
    """CloudFormation lifecycle request types."""

    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


class ResourceTag(str, enum.Enum):
    """Resources this function knows how to provision."""

    IDENTITY_POOL = "CognitoIdentityPool"
    IDENTITY_POOL_ROLES = "CognitoIdentityPoolRoles"


class CustomResourceEvent(BaseModel):
    """Inbound custom resource request.

    RequestType is kept as a plain string so that an unsupported type can
    still be answered with a FAILED callback.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    request_type: str = Field(alias="RequestType")
    response_url: str = Field(alias="ResponseURL")
    stack_id: str = Field(alias="StackId")
    request_id: str = Field(alias="RequestId")
    logical_resource_id: str = Field(alias="LogicalResourceId")
    service_token: Optional[str] = Field(default=None, alias="ServiceToken")
    physical_resource_id: Optional[str] = Field(
        default=None, alias="PhysicalResourceId"
    )
    resource_type: Optional[str] = Field(default=None, alias="ResourceType")
    resource_properties: dict[str, Any] = Field(
        default_factory=dict, alias="ResourceProperties"
    )
    old_resource_properties: Optional[dict[str, Any]] = Field(
        default=None, alias="OldResourceProperties"
    )

    @property
    def lifecycle(self) -> Optional[RequestType]:
        """The request type, or None when CloudFormation sent something else."""
        try:
            return RequestType(self.request_type)
        except ValueError:
            return None

    @property
    def options(self) -> dict[str, Any]:
        """The ``Options`` object of the resource properties."""
        options = self.resource_properties.get("Options")
        if options is None:
            return {}
        if not isinstance(options, dict):
            raise ValidationError(
                "ResourceProperties.Options must be an object",
                field="Options",
            )
        return dict(options)

    @property
    def resource_tag(self) -> Optional[ResourceTag]:
        """Dispatch key: the logical id, falling back to the Custom:: type."""
        candidates = [self.logical_resource_id]
        if self.resource_type and self.resource_type.startswith(
            CUSTOM_RESOURCE_PREFIX
        ):
            candidates.append(self.resource_type[len(CUSTOM_RESOURCE_PREFIX):])
        for candidate in candidates:
            try:
                return ResourceTag(candidate)
            except ValueError:
                continue
        return None


class CustomResourceResult(BaseModel):
    """Outcome of a request, as sent to CloudFormation and returned."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(alias="Status")
    physical_resource_id: str = Field(alias="PhysicalResourceId")
    data: dict[str, Any] = Field(default_factory=dict, alias="Data")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
