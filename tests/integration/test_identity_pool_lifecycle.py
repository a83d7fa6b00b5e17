"""End-to-end lifecycle against the real Cognito Identity API.

Run with ``pytest -m integration`` after ``deploy.py ci-bootstrap`` has
exported ``CFN_S3_BUCKET`` and ``ROLE_ARN``. Callbacks are written to a
pre-signed S3 URL in that bucket instead of a CloudFormation endpoint.
The classes run in order and share state through class attributes.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from datetime import timezone
from pathlib import Path
from types import SimpleNamespace

import boto3
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / 'backend' / 'src'))

from identity_pool.handler import lambda_handler  # noqa: E402

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not (os.getenv('CFN_S3_BUCKET') and os.getenv('ROLE_ARN')),
        reason='CFN_S3_BUCKET and ROLE_ARN are required',
    ),
]

IDENTITY_POOL_NAME = 'test_id_pool'
REGION = os.getenv('AWS_REGION', 'us-east-1')
STACK_ID = (
    f'arn:aws:cloudformation:{REGION}:000000000000:stack/'
    'cognito-identity-pool/00000000-0000-0000-0000-000000000000'
)


@pytest.fixture
def context() -> SimpleNamespace:
    today = datetime.now(timezone.utc).strftime('%Y/%m/%d')
    return SimpleNamespace(
        log_stream_name=f'{today}/[$LATEST]aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa',
        aws_request_id='integration-test',
    )


@pytest.fixture
def response_url() -> str:
    return boto3.client('s3').generate_presigned_url(
        'put_object',
        Params={
            'Bucket': os.environ['CFN_S3_BUCKET'],
            'Key': 'test/cognito-identity-pool.json',
        },
        ExpiresIn=900,
    )


def _event(response_url: str, logical_id: str, request_type: str, options: dict, **extra) -> dict:
    event = {
        'ResponseURL': response_url,
        'StackId': STACK_ID,
        'RequestId': 'TEST_REQUEST_ID',
        'LogicalResourceId': logical_id,
        'RequestType': request_type,
        'ResourceProperties': {'Options': options},
    }
    event.update(extra)
    return event


class TestIdentityPoolLifecycle:
    """Create, update and delete a pool through the handler."""

    options = {
        'IdentityPoolName': IDENTITY_POOL_NAME,
        'AllowUnauthenticatedIdentities': 'false',
        'DeveloperProviderName': 'TEST_PROVIDER_NAME',
    }
    identity_pool_id: str | None = None

    def test_create(self, response_url, context) -> None:
        result = lambda_handler(
            _event(response_url, 'CognitoIdentityPool', 'Create', self.options),
            context,
        )

        assert result['Status'] == 'SUCCESS'
        data = result['Data']
        assert data['IdentityPoolId']
        assert data['IdentityPoolName'] == IDENTITY_POOL_NAME
        assert data['AllowUnauthenticatedIdentities'] is False
        assert data['DeveloperProviderName'] == 'TEST_PROVIDER_NAME'
        assert result['PhysicalResourceId'] == data['IdentityPoolId']
        type(self).identity_pool_id = data['IdentityPoolId']

    def test_update(self, response_url, context) -> None:
        assert self.identity_pool_id
        result = lambda_handler(
            _event(
                response_url,
                'CognitoIdentityPool',
                'Update',
                self.options,
                PhysicalResourceId=self.identity_pool_id,
            ),
            context,
        )

        assert result['Status'] == 'SUCCESS'
        assert result['Data']['IdentityPoolId'] == self.identity_pool_id
        assert result['Data']['IdentityPoolName'] == IDENTITY_POOL_NAME

    def test_unknown_request_type_fails(self, response_url, context) -> None:
        result = lambda_handler(
            _event(
                response_url,
                'CognitoIdentityPool',
                'UNKNOWN',
                self.options,
                PhysicalResourceId=self.identity_pool_id,
            ),
            context,
        )

        assert result['Status'] == 'FAILED'
        assert result['Data'] == {'Error': 'Unknown operation'}

    def test_delete(self, response_url, context) -> None:
        assert self.identity_pool_id
        result = lambda_handler(
            _event(
                response_url,
                'CognitoIdentityPool',
                'Delete',
                self.options,
                PhysicalResourceId=self.identity_pool_id,
            ),
            context,
        )

        assert result['Status'] == 'SUCCESS'
        assert result['PhysicalResourceId'] == self.identity_pool_id


class TestIdentityPoolRolesLifecycle:
    """Attach the CI role to a pool created outside the handler."""

    @pytest.fixture(scope='class')
    def identity_pool_id(self):
        client = boto3.client('cognito-identity')
        pool = client.create_identity_pool(
            IdentityPoolName=IDENTITY_POOL_NAME,
            AllowUnauthenticatedIdentities=False,
            DeveloperProviderName='devauth',
        )
        yield pool['IdentityPoolId']
        client.delete_identity_pool(IdentityPoolId=pool['IdentityPoolId'])

    @pytest.fixture
    def options(self, identity_pool_id) -> dict:
        return {
            'IdentityPoolId': identity_pool_id,
            'Roles': {'authenticated': os.environ['ROLE_ARN']},
        }

    @pytest.mark.parametrize('request_type', ['Create', 'Update', 'Delete'])
    def test_succeeds(self, request_type, options, response_url, context) -> None:
        result = lambda_handler(
            _event(response_url, 'CognitoIdentityPoolRoles', request_type, options),
            context,
        )

        assert result['Status'] == 'SUCCESS'

    def test_roles_are_attached(self, identity_pool_id, options, response_url, context) -> None:
        lambda_handler(
            _event(response_url, 'CognitoIdentityPoolRoles', 'Update', options),
            context,
        )

        roles = boto3.client('cognito-identity').get_identity_pool_roles(
            IdentityPoolId=identity_pool_id
        )
        assert roles['Roles'] == {'authenticated': os.environ['ROLE_ARN']}

    def test_unknown_request_type_fails(self, identity_pool_id, options, response_url, context) -> None:
        result = lambda_handler(
            _event(
                response_url,
                'CognitoIdentityPoolRoles',
                'UNKNOWN',
                options,
                PhysicalResourceId=identity_pool_id,
            ),
            context,
        )

        assert result['Status'] == 'FAILED'
