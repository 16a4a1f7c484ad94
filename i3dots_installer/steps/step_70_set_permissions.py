from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..context import InstallContext
from ..lib.assets import chown_tree, mark_executable
from ..pipeline import Severity

logger = logging.getLogger(__name__)


def intermediate_dirs(home: Path, target: Path) -> List[Path]:
    """Directories strictly between ``home`` and ``target`` (e.g. ~/.local, ~/.local/share)."""

    if home not in target.parents:
        return []
    return [p for p in reversed(target.parents) if home in p.parents]


class SetPermissionsStep:
    step_id = "70_set_permissions"
    severity = Severity.RECOVERABLE

    def run(self, ctx: InstallContext) -> None:
        logger.info("Finalizing permissions...")
        uid, gid = ctx.user.uid, ctx.user.gid

        for d in (ctx.config_dir, ctx.font_dir):
            if d.is_dir():
                chown_tree(str(d), uid, gid, dry_run=ctx.dry_run)

        # Only the parents themselves; the rest of ~/.local is not ours to touch.
        for d in intermediate_dirs(ctx.home, ctx.font_dir):
            chown_tree(str(d), uid, gid, recursive=False, dry_run=ctx.dry_run)

        for subsystem in ctx.manifest.config_subsystems:
            mark_executable(str(ctx.config_dir / subsystem), dry_run=ctx.dry_run)
        logger.info("Permissions finalized.")
