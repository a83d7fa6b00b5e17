"""Pytest configuration and fixtures for the identity pool resource tests.

This module provides CloudFormation event factories, a fake Lambda
context and mocks for the response callback and the Cognito client.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from typing import Callable

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

RESPONSE_URL = (
    'https://cloudformation-custom-resource-response-useast1.s3.amazonaws.com/'
    'arn%3Aaws%3Acloudformation/response?X-Amz-Signature=abc123'
)
STACK_ID = (
    'arn:aws:cloudformation:us-east-1:000000000000:stack/'
    'cognito-identity-pool/00000000-0000-0000-0000-000000000000'
)
LOG_STREAM_NAME = '2026/10/18/[$LATEST]aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa'
IDENTITY_POOL_ID = 'us-east-1:11111111-2222-3333-4444-555555555555'


@pytest.fixture(autouse=True)
def _reset_state():
    """Clear cached boto3 clients and logging context between tests."""
    from identity_pool.services.aws_clients import clear_client_cache
    from identity_pool.utils.logging import clear_request_context

    clear_client_cache()
    yield
    clear_client_cache()
    clear_request_context()


@pytest.fixture
def lambda_context() -> SimpleNamespace:
    """Minimal Lambda context object."""
    return SimpleNamespace(
        log_stream_name=LOG_STREAM_NAME,
        aws_request_id='lambda-request-id',
        function_name='cognito-identity-pool-Lambda',
    )


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """Factory for CloudFormation custom resource events."""

    def _make(
        logical_resource_id: str = 'CognitoIdentityPool',
        request_type: str = 'Create',
        options: dict[str, Any] | None = None,
        **overrides: Any,
    ) -> dict[str, Any]:
        event: dict[str, Any] = {
            'RequestType': request_type,
            'ServiceToken': 'arn:aws:lambda:us-east-1:000000000000:function:Lambda',
            'ResponseURL': RESPONSE_URL,
            'StackId': STACK_ID,
            'RequestId': 'TEST_REQUEST_ID',
            'LogicalResourceId': logical_resource_id,
            'ResourceType': f'Custom::{logical_resource_id}',
            'ResourceProperties': {
                'ServiceToken': 'arn:aws:lambda:us-east-1:000000000000:function:Lambda',
                'Options': options if options is not None else {},
            },
        }
        event.update(overrides)
        return event

    return _make


@pytest.fixture
def pool_options() -> dict[str, Any]:
    """Identity pool options as CloudFormation delivers them (strings)."""
    return {
        'IdentityPoolName': 'test_id_pool',
        'AllowUnauthenticatedIdentities': 'false',
        'DeveloperProviderName': 'TEST_PROVIDER_NAME',
    }


@pytest.fixture
def mock_urlopen(mocker):
    """Patch the HTTPS PUT to the ResponseURL."""
    mock = mocker.patch('identity_pool.utils.cfn_response.urllib.request.urlopen')
    mock.return_value.__enter__.return_value.status = 200
    return mock


@pytest.fixture
def sent_body(mock_urlopen) -> Callable[[], dict[str, Any]]:
    """Return the JSON body of the last callback sent to CloudFormation."""

    def _body() -> dict[str, Any]:
        request = mock_urlopen.call_args[0][0]
        return json.loads(request.data.decode('utf-8'))

    return _body


@pytest.fixture
def cognito_client(mocker):
    """Mock Cognito Identity client handed to the resource operations."""
    client = mocker.MagicMock(name='cognito-identity')
    mocker.patch(
        'identity_pool.handler.get_cognito_identity_client',
        return_value=client,
    )
    return client


@pytest.fixture
def mock_boto3_client(mocker):
    """Mock boto3 client for AWS service calls."""
    mock = mocker.patch('boto3.client')
    return mock
