"""Deployment configuration for the identity pool stack.

Stack parameter values live in ``config.json`` at the repository root;
the Lambda artifact location comes from the ``LambdaS3Bucket`` and
``LambdaS3Key`` environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Mapping
from typing import Optional

from identity_pool.exceptions import ConfigurationError
from identity_pool.utils.logging import get_logger

logger = get_logger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]
CONFIG_PATH = REPO_ROOT / "config.json"
TEMPLATE_PATH = REPO_ROOT / "cloudformation.json"
CI_TEMPLATE_PATH = REPO_ROOT / "ci" / "bootstrap.json"

STACK_NAME = "cognito-identity-pool"
CI_STACK_NAME = f"CI-for-{STACK_NAME}"
LAMBDA_LOGICAL_ID = "Lambda"

BUCKET_ENV_VAR = "LambdaS3Bucket"
KEY_ENV_VAR = "LambdaS3Key"

# Stack outputs copied into config.json by update-config.
CONFIG_OUTPUTS = {
    "AccessKey": "accessKeyId",
    "AccessSecret": "secretAccessKey",
}

# CI stack outputs printed as environment assignments.
CI_OUTPUT_ENV = {
    "CIUserAccessKey": "AWS_ACCESS_KEY_ID",
    "CIUserSecretKey": "AWS_SECRET_ACCESS_KEY",
    "CIRegion": "AWS_REGION",
    "Bucket": "CFN_S3_BUCKET",
    "CognitoRole": "ROLE_ARN",
}


@dataclass(frozen=True)
class ArtifactLocation:
    """Where the zipped Lambda bundle is stored in S3."""

    bucket: str
    key: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ArtifactLocation":
        env = os.environ if environ is None else environ
        bucket = (env.get(BUCKET_ENV_VAR) or "").strip()
        if not bucket:
            raise ConfigurationError(BUCKET_ENV_VAR)
        key = (env.get(KEY_ENV_VAR) or "").strip()
        if not key:
            raise ConfigurationError(KEY_ENV_VAR)
        return cls(bucket=bucket, key=key)


def load_config(path: Path = CONFIG_PATH) -> dict[str, Any]:
    """Load stack parameter values, or an empty mapping if unavailable."""
    try:
        with path.open(encoding="utf-8") as handle:
            config = json.load(handle)
    except (OSError, json.JSONDecodeError):
        logger.error("Cannot load configuration", extra={"path": str(path)})
        return {}
    if not isinstance(config, dict):
        logger.error("Cannot load configuration", extra={"path": str(path)})
        return {}
    return config


def save_config(config: Mapping[str, Any], path: Path = CONFIG_PATH) -> None:
    """Write the configuration back as tab-indented JSON."""
    path.write_text(json.dumps(dict(config), indent="\t"), encoding="utf-8")


def load_template(path: Path = TEMPLATE_PATH) -> str:
    if not path.is_file():
        raise ConfigurationError(str(path))
    return path.read_text(encoding="utf-8")


def stack_parameters(
    config: Mapping[str, Any],
    template_body: Optional[str] = None,
) -> list[dict[str, str]]:
    """Map configuration entries to CloudFormation stack parameters.

    Strings are passed through and everything else is JSON-encoded. When a
    template is given, keys it does not declare are skipped, so values
    written back by update-config do not break the next deploy.
    """
    declared: Optional[set[str]] = None
    if template_body is not None:
        declared = set(json.loads(template_body).get("Parameters", {}))

    parameters = []
    for key, value in config.items():
        if declared is not None and key not in declared:
            logger.debug("Skipping undeclared parameter", extra={"parameter": key})
            continue
        parameters.append(
            {
                "ParameterKey": key,
                "ParameterValue": value if isinstance(value, str) else json.dumps(value),
            }
        )
    return parameters
