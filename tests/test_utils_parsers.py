"""Tests for resource property parsers."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from identity_pool.exceptions import PropertyDecodeError  # noqa: E402
from identity_pool.exceptions import ValidationError  # noqa: E402
from identity_pool.utils.parsers import decode_json_properties  # noqa: E402
from identity_pool.utils.parsers import strip_response_metadata  # noqa: E402


class TestDecodeJsonProperties:
    """Tests for decode_json_properties function."""

    def test_decodes_boolean_strings(self) -> None:
        decoded = decode_json_properties({'AllowUnauthenticatedIdentities': 'false'})
        assert decoded['AllowUnauthenticatedIdentities'] is False

    def test_decodes_allow_classic_flow(self) -> None:
        decoded = decode_json_properties({'AllowClassicFlow': 'true'})
        assert decoded['AllowClassicFlow'] is True

    def test_decodes_lists(self) -> None:
        decoded = decode_json_properties({'SamlProviderARNs': '["arn:a", "arn:b"]'})
        assert decoded['SamlProviderARNs'] == ['arn:a', 'arn:b']

    def test_leaves_other_keys_alone(self) -> None:
        params = {'IdentityPoolName': 'true', 'DeveloperProviderName': '123'}
        assert decode_json_properties(params) == params

    def test_skips_empty_values(self) -> None:
        decoded = decode_json_properties({'SupportedLoginProviders': ''})
        assert decoded['SupportedLoginProviders'] == ''

    def test_keeps_decoded_values(self) -> None:
        providers = {'accounts.google.com': 'client-id'}
        decoded = decode_json_properties({'SupportedLoginProviders': providers})
        assert decoded['SupportedLoginProviders'] == providers

    def test_does_not_mutate_input(self) -> None:
        params = {'AllowUnauthenticatedIdentities': 'true'}
        decode_json_properties(params)
        assert params == {'AllowUnauthenticatedIdentities': 'true'}

    def test_raises_for_invalid_json(self) -> None:
        with pytest.raises(PropertyDecodeError) as exc_info:
            decode_json_properties({'CognitoIdentityProviders': '[{'})
        assert exc_info.value.key == 'CognitoIdentityProviders'
        assert isinstance(exc_info.value, ValidationError)

    def test_custom_keys(self) -> None:
        decoded = decode_json_properties({'Flag': 'true'}, keys=('Flag',))
        assert decoded['Flag'] is True


class TestStripResponseMetadata:
    """Tests for strip_response_metadata function."""

    def test_removes_metadata(self) -> None:
        response = {'IdentityPoolId': 'id', 'ResponseMetadata': {'HTTPStatusCode': 200}}
        assert strip_response_metadata(response) == {'IdentityPoolId': 'id'}

    def test_handles_none(self) -> None:
        assert strip_response_metadata(None) == {}
