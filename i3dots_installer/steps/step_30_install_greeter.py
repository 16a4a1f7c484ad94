from __future__ import annotations

import logging
import os
from pathlib import Path

from ..context import InstallContext
from ..errors import CommandError, GreeterBuildError
from ..lib.assets import remove_tree
from ..lib.command import run_cmd
from ..pipeline import Severity

logger = logging.getLogger(__name__)


def build_dir_for(ctx: InstallContext, pid: int | None = None) -> Path:
    """Per-process scratch directory, so two runs never share a clone."""

    return Path(ctx.system.tmp_root) / f"i3dots-greeter-{os.getpid() if pid is None else pid}"


class InstallGreeterStep:
    step_id = "30_install_greeter"
    severity = Severity.FATAL

    def run(self, ctx: InstallContext) -> None:
        name = ctx.manifest.greeter_name
        logger.info("Installing %s from source...", name)

        tmp_dir = build_dir_for(ctx)
        if ctx.dry_run:
            logger.info("Would create %s", tmp_dir)
        else:
            try:
                tmp_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise GreeterBuildError(f"Failed to create temporary directory {tmp_dir}: {e}") from e

        try:
            src_dir = tmp_dir / name
            logger.info("Cloning %s repository with submodules...", name)
            try:
                run_cmd(["git", "clone", "--recursive", ctx.manifest.greeter_repo, str(src_dir)], dry_run=ctx.dry_run)
            except CommandError as e:
                raise GreeterBuildError(f"Failed to clone {name} repository: {e}") from e

            logger.info("Building and installing %s...", name)
            try:
                run_cmd(["make", "install"], cwd=str(src_dir), dry_run=ctx.dry_run)
            except CommandError as e:
                raise GreeterBuildError(f"Failed to install {name}: {e}") from e
        finally:
            remove_tree(str(tmp_dir), dry_run=ctx.dry_run)

        logger.info("%s installed successfully.", name)
