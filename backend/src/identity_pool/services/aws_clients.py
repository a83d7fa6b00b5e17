"""boto3 clients shared by the Lambda handler and the deploy pipeline.

One client is kept per (service, region) so warm Lambda invocations reuse
their connection pools.
"""

from __future__ import annotations

import os
from typing import Any

import boto3
from botocore.config import Config

USER_AGENT_EXTRA = "cognito-identity-pool-resource"
# Resource operations report the first API answer to CloudFormation as is.
NO_RETRY_SERVICES = frozenset({"cognito-identity"})

_clients: dict[tuple[str, str | None], Any] = {}


def _client_config(service: str) -> Config:
    config = Config(
        user_agent_extra=USER_AGENT_EXTRA,
        connect_timeout=int(os.getenv("AWS_CONNECT_TIMEOUT", "5")),
        read_timeout=int(os.getenv("AWS_READ_TIMEOUT", "30")),
    )
    if service in NO_RETRY_SERVICES:
        config = config.merge(Config(retries={"max_attempts": 1, "mode": "standard"}))
    return config


def get_client(service: str, region_name: str | None = None) -> Any:
    """Return the shared client for ``service``.

    Without an explicit region the Lambda's ``AWS_REGION`` is used, and
    boto3's own resolution applies when that is unset too.
    """
    region = region_name or os.getenv("AWS_REGION") or None
    key = (service, region)
    client = _clients.get(key)
    if client is None:
        client = boto3.client(  # type: ignore[call-overload]
            service,
            region_name=region,
            config=_client_config(service),
        )
        _clients[key] = client
    return client


def clear_client_cache() -> None:
    _clients.clear()


def get_cognito_identity_client(region_name: str | None = None) -> Any:
    return get_client("cognito-identity", region_name)


def get_s3_client(region_name: str | None = None) -> Any:
    return get_client("s3", region_name)


def get_cloudformation_client(region_name: str | None = None) -> Any:
    return get_client("cloudformation", region_name)


def get_lambda_client(region_name: str | None = None) -> Any:
    return get_client("lambda", region_name)
