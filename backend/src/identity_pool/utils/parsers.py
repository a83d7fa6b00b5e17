"""Parsing helpers for CloudFormation resource properties.

CloudFormation hands every scalar property to a custom resource as a
string, so booleans and nested structures written into a template arrive
as ``"false"`` or ``'{"graph.facebook.com": "123"}'``.
"""

from __future__ import annotations

import json
from typing import Any
from typing import Iterable
from typing import Mapping

from identity_pool.exceptions import PropertyDecodeError

# Identity pool options that the API expects as booleans, lists or maps.
IDENTITY_POOL_JSON_PROPERTIES = (
    "AllowUnauthenticatedIdentities",
    "AllowClassicFlow",
    "CognitoIdentityProviders",
    "OpenIdConnectProviderARNs",
    "SamlProviderARNs",
    "SupportedLoginProviders",
)


def decode_json_properties(
    params: Mapping[str, Any],
    keys: Iterable[str] = IDENTITY_POOL_JSON_PROPERTIES,
) -> dict[str, Any]:
    """Return a copy of ``params`` with string-encoded values decoded.

    Only keys that are present and truthy are touched. Values that are
    already decoded (CloudFormation passes nested objects through as-is)
    are left alone.

    Raises:
        PropertyDecodeError: If a value is not valid JSON.
    """
    decoded = dict(params)
    for key in keys:
        value = decoded.get(key)
        if not value or not isinstance(value, str):
            continue
        try:
            decoded[key] = json.loads(value)
        except json.JSONDecodeError as exc:
            raise PropertyDecodeError(key, exc.msg) from exc
    return decoded


def strip_response_metadata(response: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop botocore's ResponseMetadata from an API response."""
    data = dict(response or {})
    data.pop("ResponseMetadata", None)
    return data
