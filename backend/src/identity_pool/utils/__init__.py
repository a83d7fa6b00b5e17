"""Utility modules for the identity pool resource."""

from identity_pool.utils.cfn_response import (
    FAILED,
    SUCCESS,
    send_cfn_response,
)
from identity_pool.utils.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    mask_url,
    set_request_context,
)
from identity_pool.utils.parsers import (
    decode_json_properties,
    strip_response_metadata,
)

__all__ = [
    "FAILED",
    "SUCCESS",
    "clear_request_context",
    "configure_logging",
    "decode_json_properties",
    "get_logger",
    "mask_url",
    "send_cfn_response",
    "set_request_context",
    "strip_response_metadata",
]
