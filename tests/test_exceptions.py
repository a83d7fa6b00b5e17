"""Tests for custom exception classes."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from identity_pool.exceptions import (  # noqa: E402
    ConfigurationError,
    DeploymentError,
    IdentityPoolError,
    PropertyDecodeError,
    UnknownOperationError,
    ValidationError,
)


class TestIdentityPoolError:
    """Tests for base IdentityPoolError class."""

    def test_to_dict_without_detail(self) -> None:
        error = IdentityPoolError('Error message')
        assert error.to_dict() == {'message': 'Error message'}

    def test_to_dict_with_detail(self) -> None:
        error = IdentityPoolError('Error', detail='Additional info')
        assert error.to_dict() == {'message': 'Error', 'detail': 'Additional info'}

    def test_str_is_message(self) -> None:
        assert str(IdentityPoolError('Something went wrong')) == 'Something went wrong'


class TestValidationError:
    """Tests for ValidationError class."""

    def test_includes_field_in_detail(self) -> None:
        error = ValidationError('Invalid value', field='Options')
        assert error.field == 'Options'
        assert 'Options' in error.detail

    def test_without_field(self) -> None:
        error = ValidationError('Invalid value')
        assert error.detail is None


class TestPropertyDecodeError:
    """Tests for PropertyDecodeError class."""

    def test_message_names_key(self) -> None:
        error = PropertyDecodeError('SamlProviderARNs', 'Expecting value')
        assert 'SamlProviderARNs' in error.message
        assert error.field == 'SamlProviderARNs'


class TestUnknownOperationError:
    """Tests for UnknownOperationError class."""

    def test_to_dict_matches_callback_contract(self) -> None:
        error = UnknownOperationError('CognitoIdentityPool', 'UNKNOWN')
        assert error.to_dict() == {'Error': 'Unknown operation'}

    def test_detail_names_operation(self) -> None:
        error = UnknownOperationError('CognitoIdentityPool', 'UNKNOWN')
        assert error.detail == 'CognitoIdentityPool:UNKNOWN'


class TestConfigurationError:
    """Tests for ConfigurationError class."""

    def test_message_includes_config_name(self) -> None:
        error = ConfigurationError('LambdaS3Bucket')
        assert 'LambdaS3Bucket' in error.message
        assert error.config_name == 'LambdaS3Bucket'


class TestDeploymentError:
    """Tests for DeploymentError class."""

    def test_is_identity_pool_error(self) -> None:
        assert isinstance(DeploymentError('Stack not found'), IdentityPoolError)
