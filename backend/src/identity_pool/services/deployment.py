"""CloudFormation, S3 and Lambda calls used by the deploy pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Sequence

from botocore.exceptions import ClientError
from botocore.exceptions import WaiterError

from identity_pool.config import CI_OUTPUT_ENV
from identity_pool.config import CI_STACK_NAME
from identity_pool.config import CONFIG_OUTPUTS
from identity_pool.config import LAMBDA_LOGICAL_ID
from identity_pool.config import ArtifactLocation
from identity_pool.config import load_config
from identity_pool.config import save_config
from identity_pool.exceptions import DeploymentError
from identity_pool.services.aws_clients import get_cloudformation_client
from identity_pool.services.aws_clients import get_lambda_client
from identity_pool.services.aws_clients import get_s3_client
from identity_pool.utils.logging import get_logger

logger = get_logger(__name__)

CREATE_STACK = "create_stack"
UPDATE_STACK = "update_stack"
_WAITERS = {
    CREATE_STACK: "stack_create_complete",
    UPDATE_STACK: "stack_update_complete",
}
_NO_UPDATES = "No updates are to be performed"
LISTED_STACK_STATUSES = ("CREATE_COMPLETE", "UPDATE_COMPLETE")


def upload_artifact(archive: Path, location: ArtifactLocation) -> dict[str, Any]:
    """Upload the zipped Lambda bundle to S3."""
    if not archive.is_file():
        raise DeploymentError(f"Missing Lambda archive: {archive}")
    logger.info(
        "Uploading Lambda bundle",
        extra={"bucket": location.bucket, "key": location.key},
    )
    with archive.open("rb") as body:
        return get_s3_client().put_object(
            Bucket=location.bucket,
            Key=location.key,
            Body=body,
        )


def list_stacks() -> list[dict[str, Any]]:
    """Return summaries of stacks that finished creating or updating."""
    client = get_cloudformation_client()
    summaries: list[dict[str, Any]] = []
    for page in client.get_paginator("list_stacks").paginate(
        StackStatusFilter=list(LISTED_STACK_STATUSES)
    ):
        summaries.extend(page.get("StackSummaries", []))
    return summaries


def stack_operation(stack_name: str) -> str:
    """Return ``update_stack`` if the stack exists, else ``create_stack``."""
    try:
        get_cloudformation_client().describe_stacks(StackName=stack_name)
    except ClientError:
        return CREATE_STACK
    return UPDATE_STACK


def deploy_stack(
    stack_name: str,
    template_body: str,
    parameters: Sequence[Mapping[str, str]] = (),
    capabilities: Sequence[str] = ("CAPABILITY_IAM",),
) -> Optional[str]:
    """Create or update a stack.

    Returns the operation used, or None when the stack is already up to date.
    """
    operation = stack_operation(stack_name)
    client = get_cloudformation_client()
    logger.info(
        "Deploying stack",
        extra={"stack_name": stack_name, "operation": operation},
    )
    kwargs: dict[str, Any] = {
        "StackName": stack_name,
        "Capabilities": list(capabilities),
        "TemplateBody": template_body,
    }
    if parameters:
        kwargs["Parameters"] = [dict(parameter) for parameter in parameters]
    try:
        response = getattr(client, operation)(**kwargs)
    except ClientError as exc:
        message = exc.response.get("Error", {}).get("Message", "")
        if operation == UPDATE_STACK and _NO_UPDATES in message:
            logger.info("Stack is up to date", extra={"stack_name": stack_name})
            return None
        raise
    logger.info(
        "Stack deployment started",
        extra={"stack_name": stack_name, "stack_id": response.get("StackId")},
    )
    return operation


def wait_for_stack(stack_name: str, operation: str = CREATE_STACK) -> None:
    """Block until the stack reaches the completed state for ``operation``."""
    waiter_name = _WAITERS.get(operation)
    if waiter_name is None:
        raise DeploymentError(f"No waiter for stack operation: {operation}")
    logger.info(
        "Waiting for stack",
        extra={"stack_name": stack_name, "waiter": waiter_name},
    )
    get_cloudformation_client().get_waiter(waiter_name).wait(StackName=stack_name)


def stack_outputs(stack_name: str) -> dict[str, str]:
    response = get_cloudformation_client().describe_stacks(StackName=stack_name)
    stacks = response.get("Stacks") or []
    if not stacks:
        raise DeploymentError(f"Stack not found: {stack_name}")
    return {
        output["OutputKey"]: output["OutputValue"]
        for output in stacks[0].get("Outputs", [])
    }


def update_config_from_stack(stack_name: str, config_path: Path) -> dict[str, Any]:
    """Copy the stack's credential outputs into config.json."""
    wait_for_stack(stack_name, CREATE_STACK)
    config = load_config(config_path)
    outputs = stack_outputs(stack_name)
    for output_key, config_key in CONFIG_OUTPUTS.items():
        if output_key in outputs:
            config[config_key] = outputs[output_key]
    save_config(config, config_path)
    logger.info(
        "Configuration updated from stack outputs",
        extra={"keys": sorted(set(CONFIG_OUTPUTS) & set(outputs))},
    )
    return config


def update_function_code(
    stack_name: str,
    location: ArtifactLocation,
    logical_id: str = LAMBDA_LOGICAL_ID,
) -> dict[str, Any]:
    """Point the stack's function at the uploaded bundle."""
    detail = get_cloudformation_client().describe_stack_resource(
        StackName=stack_name,
        LogicalResourceId=logical_id,
    )["StackResourceDetail"]
    function_name = detail["PhysicalResourceId"]
    logger.info("Updating function code", extra={"function_name": function_name})
    return get_lambda_client().update_function_code(
        FunctionName=function_name,
        S3Bucket=location.bucket,
        S3Key=location.key,
    )


def bootstrap_ci(
    template_body: str,
    stack_name: str = CI_STACK_NAME,
) -> list[str]:
    """Deploy the CI prerequisites stack and return its environment lines.

    A failed deploy or wait is logged; outputs are still read so a stack
    that already exists keeps working.
    """
    try:
        operation = deploy_stack(
            stack_name,
            template_body,
            capabilities=("CAPABILITY_NAMED_IAM",),
        )
        if operation is not None:
            wait_for_stack(stack_name, operation)
    except (ClientError, WaiterError):
        logger.error(
            "CI stack deployment failed",
            extra={"stack_name": stack_name},
            exc_info=True,
        )
    outputs = stack_outputs(stack_name)
    return [
        f"{CI_OUTPUT_ENV[key]}={value}"
        for key, value in outputs.items()
        if key in CI_OUTPUT_ENV
    ]

