"""Build the identity pool Lambda bundle and zip it for upload.

Layout of ``dist/``: the runtime dependencies at the top level, then
``lambda/`` (entry points) and ``src/`` (the ``identity_pool`` package).
Dependencies are installed for the Lambda platform into a cache keyed by
the requirements file, so rebuilding after a code-only change skips pip.
"""

from __future__ import annotations

import argparse
import hashlib
import logging
import os
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
import shutil
import subprocess
import sys
import zipfile

logger = logging.getLogger(__name__)

BACKEND_ROOT = Path(__file__).resolve().parents[1]
REPO_ROOT = BACKEND_ROOT.parent

RUNTIME_PYTHON = (3, 12)
PIP_TARGET_ARGS = (
    "--platform",
    "manylinux_2_17_aarch64",
    "--implementation",
    "cp",
    "--python-version",
    "3.12",
    "--only-binary=:all:",
)
CACHE_FORMAT_VERSION = "2"
CACHE_READY_MARKER = ".ready"
DEFAULT_CACHE_RETENTION = 3
CACHE_RETENTION_ENV_VAR = "LAMBDA_DEPS_CACHE_RETENTION"
# Fixed entry timestamp so identical sources give identical archives.
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


def parse_retention(value: str) -> int:
    """Parse a cache retention count; it must be an integer of at least 1."""
    try:
        count = int(value.strip())
    except ValueError as exc:
        raise ValueError(f"Cache retention must be a positive integer, got {value!r}") from exc
    if count < 1:
        raise ValueError("Cache retention must be at least 1")
    return count


def retention_arg(value: str) -> int:
    try:
        return parse_retention(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def default_retention() -> int:
    raw = os.getenv(CACHE_RETENTION_ENV_VAR)
    if raw is None:
        return DEFAULT_CACHE_RETENTION
    try:
        return parse_retention(raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid {CACHE_RETENTION_ENV_VAR}: {exc}") from exc


def strip_bytecode(directory: Path) -> None:
    for cache_dir in list(directory.rglob("__pycache__")):
        shutil.rmtree(cache_dir)
    for compiled in list(directory.rglob("*.py[co]")):
        compiled.unlink()


def _require_runtime_python() -> None:
    if sys.version_info[:2] != RUNTIME_PYTHON:
        wanted = ".".join(str(part) for part in RUNTIME_PYTHON)
        raise SystemExit(f"Python {wanted} is required to build the Lambda bundle.")


@dataclass
class DependencyCache:
    """Content-addressed installs of ``requirements`` for the Lambda platform.

    Each cache directory is named after a hash of the requirements and the
    pip target, and counts as usable only once its marker file exists. The
    marker's mtime records last use, which drives pruning.
    """

    requirements: Path
    root: Path
    retention: int = DEFAULT_CACHE_RETENTION

    @cached_property
    def key(self) -> str:
        digest = hashlib.sha256(self.requirements.read_bytes())
        digest.update(CACHE_FORMAT_VERSION.encode("utf-8"))
        digest.update(" ".join(PIP_TARGET_ARGS).encode("utf-8"))
        return digest.hexdigest()

    @property
    def directory(self) -> Path:
        return self.root / self.key

    def ensure(self) -> Path:
        """Return a ready cache directory, installing into it if needed."""
        if not self.requirements.is_file():
            raise FileNotFoundError(f"Missing requirements file: {self.requirements}")
        self.root.mkdir(parents=True, exist_ok=True)
        marker = self.directory / CACHE_READY_MARKER
        if marker.is_file():
            logger.info("Reusing Lambda dependency cache %s", self.key[:12])
            os.utime(marker)
        else:
            logger.info("Installing Lambda dependencies into cache %s", self.key[:12])
            self._install()
            marker.write_text(f"{self.key}\n", encoding="utf-8")
        self.prune()
        return self.directory

    def prune(self) -> list[Path]:
        """Drop ready caches beyond the ``retention`` most recently used."""
        ready = sorted(
            (
                path
                for path in self.root.iterdir()
                if path.is_dir()
                and not path.name.startswith(".")
                and (path / CACHE_READY_MARKER).is_file()
            ),
            key=lambda path: (path / CACHE_READY_MARKER).stat().st_mtime,
            reverse=True,
        )
        removed = []
        for stale in ready[self.retention:]:
            if stale == self.directory:
                continue
            logger.info("Pruning Lambda dependency cache %s", stale.name[:12])
            shutil.rmtree(stale)
            removed.append(stale)
        return removed

    def _install(self) -> None:
        # Install next to the final directory and rename, so an interrupted
        # pip run never leaves a half-filled cache behind.
        staging = self.root / f".{self.key}.tmp"
        shutil.rmtree(staging, ignore_errors=True)
        staging.mkdir(parents=True)
        subprocess.run(
            [
                sys.executable,
                "-m",
                "pip",
                "install",
                "--requirement",
                str(self.requirements),
                "--target",
                str(staging),
                "--no-compile",
                *PIP_TARGET_ARGS,
            ],
            check=True,
            cwd=self.requirements.parent,
            env=self._pip_env(),
        )
        strip_bytecode(staging)
        shutil.rmtree(self.directory, ignore_errors=True)
        staging.rename(self.directory)

    def _pip_env(self) -> dict[str, str]:
        home = self.root.parent / "home"
        pip_cache = self.root.parent / "pip-cache"
        home.mkdir(parents=True, exist_ok=True)
        pip_cache.mkdir(parents=True, exist_ok=True)
        env = dict(os.environ)
        env.update(
            HOME=str(home),
            PIP_CACHE_DIR=str(pip_cache),
            PYTHONDONTWRITEBYTECODE="1",
            PYTHONHASHSEED="0",
        )
        return env


def dependency_cache(source_root: Path, retention: int) -> DependencyCache:
    return DependencyCache(
        requirements=source_root / "requirements.txt",
        root=source_root / ".lambda-build" / "deps-cache",
        retention=retention,
    )


def clean(repo_root: Path) -> None:
    """Remove build/, dist/ and dist.zip."""
    for directory in (repo_root / "build", repo_root / "dist"):
        shutil.rmtree(directory, ignore_errors=True)
    (repo_root / "dist.zip").unlink(missing_ok=True)
    logger.info("Cleaned build output in %s", repo_root)


def assemble_bundle(
    source_root: Path,
    output_dir: Path,
    dependency_dir: Path | None = None,
) -> None:
    """Fill ``output_dir`` with dependencies, ``lambda/`` and ``src/``."""
    shutil.rmtree(output_dir, ignore_errors=True)
    output_dir.mkdir(parents=True)
    if dependency_dir is not None:
        shutil.copytree(
            dependency_dir,
            output_dir,
            dirs_exist_ok=True,
            ignore=shutil.ignore_patterns(CACHE_READY_MARKER),
        )
    for name in ("lambda", "src"):
        source = source_root / name
        if not source.is_dir():
            raise FileNotFoundError(f"Missing source path: {source}")
        shutil.copytree(source, output_dir / name)
    strip_bytecode(output_dir)


def zip_bundle(bundle_dir: Path, archive: Path) -> Path:
    """Zip ``bundle_dir``, dotfiles included, in sorted order."""
    if not bundle_dir.is_dir():
        raise FileNotFoundError(f"Missing bundle directory: {bundle_dir}")
    archive.unlink(missing_ok=True)
    files = sorted(path for path in bundle_dir.rglob("*") if path.is_file())
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
        for path in files:
            info = zipfile.ZipInfo(
                path.relative_to(bundle_dir).as_posix(),
                date_time=ZIP_TIMESTAMP,
            )
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = (path.stat().st_mode & 0o777) << 16
            bundle.writestr(info, path.read_bytes())
    logger.info("Wrote %s (%d files)", archive, len(files))
    return archive


def build(
    repo_root: Path = REPO_ROOT,
    source_root: Path = BACKEND_ROOT,
    retention: int = DEFAULT_CACHE_RETENTION,
) -> Path:
    """Clean, assemble ``dist/`` and zip it into ``dist.zip``."""
    _require_runtime_python()
    clean(repo_root)
    dependencies = dependency_cache(source_root, retention).ensure()
    output_dir = repo_root / "dist"
    logger.info("Assembling Lambda bundle in %s", output_dir)
    assemble_bundle(source_root, output_dir, dependencies)
    return zip_bundle(output_dir, repo_root / "dist.zip")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    retention = default_retention()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--source-root",
        type=Path,
        default=BACKEND_ROOT,
        help="Directory holding requirements.txt, lambda/ and src/.",
    )
    parser.add_argument(
        "--repo-root",
        type=Path,
        default=REPO_ROOT,
        help="Directory receiving dist/ and dist.zip.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--deps-only",
        action="store_true",
        help="Warm the dependency cache without building the bundle.",
    )
    mode.add_argument(
        "--clean",
        action="store_true",
        help="Only remove previous build output.",
    )
    parser.add_argument(
        "--cache-retention",
        type=retention_arg,
        default=retention,
        help=(
            "Dependency caches to keep "
            f"(default: {retention}, env: {CACHE_RETENTION_ENV_VAR})."
        ),
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    args = _parse_args(argv)
    source_root = args.source_root.resolve()
    repo_root = args.repo_root.resolve()

    if args.clean:
        clean(repo_root)
    elif args.deps_only:
        _require_runtime_python()
        dependency_cache(source_root, args.cache_retention).ensure()
        logger.info("Lambda dependency cache is ready.")
    else:
        build(repo_root, source_root, args.cache_retention)
        logger.info("Lambda bundle ready.")


if __name__ == "__main__":
    main()
