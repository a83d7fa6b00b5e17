"""Lambda entrypoint for the Cognito identity pool custom resources."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from identity_pool.handler import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the identity pool custom resource handler."""
    return _handler(dict(event), context)
