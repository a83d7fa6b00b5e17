"""Build, upload and deploy the Cognito identity pool stack.

Tasks:
    clean          remove build/, dist/ and dist.zip
    build          clean, assemble dist/ and zip it into dist.zip
    upload         put dist.zip at s3://$LambdaS3Bucket/$LambdaS3Key
    build-upload   build, then upload
    list-stacks    list stacks in CREATE_COMPLETE or UPDATE_COMPLETE
    deploy-stack   create or update the stack from cloudformation.json
    update-config  wait for the stack and copy its key outputs to config.json
    update-code    point the stack's Lambda at the uploaded bundle
    update         update-config, build-upload, update-code (existing stack)
    default        build-upload, deploy-stack (new stack or template change)
    ci-bootstrap   deploy the CI prerequisites stack and print its env vars
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Callable

from botocore.exceptions import ClientError
from botocore.exceptions import WaiterError

BACKEND_ROOT = Path(__file__).resolve().parents[1]
REPO_ROOT = BACKEND_ROOT.parent
sys.path.insert(0, str(BACKEND_ROOT / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

import build_lambda_bundle  # noqa: E402
from identity_pool.config import CI_TEMPLATE_PATH  # noqa: E402
from identity_pool.config import CONFIG_PATH  # noqa: E402
from identity_pool.config import STACK_NAME  # noqa: E402
from identity_pool.config import TEMPLATE_PATH  # noqa: E402
from identity_pool.config import ArtifactLocation  # noqa: E402
from identity_pool.config import load_config  # noqa: E402
from identity_pool.config import load_template  # noqa: E402
from identity_pool.config import stack_parameters  # noqa: E402
from identity_pool.exceptions import IdentityPoolError  # noqa: E402
from identity_pool.services import deployment  # noqa: E402

logger = logging.getLogger(__name__)

ARCHIVE_PATH = REPO_ROOT / "dist.zip"


def clean(args: argparse.Namespace) -> None:
    build_lambda_bundle.clean(REPO_ROOT)


def build(args: argparse.Namespace) -> None:
    build_lambda_bundle.build(REPO_ROOT, BACKEND_ROOT, args.cache_retention)


def upload(args: argparse.Namespace) -> None:
    deployment.upload_artifact(ARCHIVE_PATH, ArtifactLocation.from_env())


def build_upload(args: argparse.Namespace) -> None:
    build(args)
    upload(args)


def list_stacks(args: argparse.Namespace) -> None:
    for summary in deployment.list_stacks():
        print(json.dumps(summary, default=str))


def deploy_stack(args: argparse.Namespace) -> None:
    template_body = load_template(TEMPLATE_PATH)
    parameters = stack_parameters(load_config(CONFIG_PATH), template_body)
    operation = deployment.deploy_stack(args.stack_name, template_body, parameters)
    logger.info("Stack %s: %s", args.stack_name, operation or "no changes")


def update_config(args: argparse.Namespace) -> None:
    config = deployment.update_config_from_stack(args.stack_name, CONFIG_PATH)
    logger.info("Updated %s (%d keys)", CONFIG_PATH.name, len(config))


def update_code(args: argparse.Namespace) -> None:
    deployment.update_function_code(args.stack_name, ArtifactLocation.from_env())


def update(args: argparse.Namespace) -> None:
    update_config(args)
    build_upload(args)
    update_code(args)


def default(args: argparse.Namespace) -> None:
    build_upload(args)
    deploy_stack(args)


def ci_bootstrap(args: argparse.Namespace) -> None:
    for line in deployment.bootstrap_ci(load_template(CI_TEMPLATE_PATH)):
        print(line)


TASKS: dict[str, Callable[[argparse.Namespace], None]] = {
    "clean": clean,
    "build": build,
    "upload": upload,
    "build-upload": build_upload,
    "list-stacks": list_stacks,
    "deploy-stack": deploy_stack,
    "update-config": update_config,
    "update-code": update_code,
    "update": update,
    "default": default,
    "ci-bootstrap": ci_bootstrap,
}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "task",
        nargs="?",
        default="default",
        choices=sorted(TASKS),
        help="Pipeline task to run (default: %(default)s).",
    )
    parser.add_argument(
        "--stack-name",
        default=STACK_NAME,
        help="Hosting stack name (default: %(default)s).",
    )
    parser.add_argument(
        "--cache-retention",
        type=build_lambda_bundle.retention_arg,
        default=build_lambda_bundle.default_retention(),
        help=(
            "Dependency caches to keep when building "
            f"(env: {build_lambda_bundle.CACHE_RETENTION_ENV_VAR})."
        ),
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    args = _parse_args(argv)
    try:
        TASKS[args.task](args)
    except IdentityPoolError as exc:
        logger.error("%s", exc.message)
        return 1
    except ClientError as exc:
        logger.error("%s", exc)
        return 1
    except WaiterError as exc:
        logger.error("Stack did not reach the expected state: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
