from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.assets import remove_tree
from ..pipeline import Severity

logger = logging.getLogger(__name__)


class CleanupStep:
    step_id = "10_cleanup"
    severity = Severity.RECOVERABLE

    def run(self, ctx: InstallContext) -> None:
        logger.info("Cleaning up previous configuration files (if they exist)...")

        targets = [ctx.config_dir / name for name in ctx.manifest.config_subsystems]
        # Only the theme this installer ships; system-provided themes stay.
        targets.append(ctx.greeter_theme_dir)

        for target in targets:
            if remove_tree(str(target), dry_run=ctx.dry_run):
                logger.info("Removed %s", target)

        logger.info("Cleanup finished.")
