from __future__ import annotations

import logging

from ..context import InstallContext
from ..lib.assets import copy_tree, make_user_dirs
from ..lib.command import run_cmd
from ..pipeline import Severity

logger = logging.getLogger(__name__)


class InstallFontsStep:
    step_id = "40_install_fonts"
    severity = Severity.RECOVERABLE

    def run(self, ctx: InstallContext) -> None:
        logger.info("Installing fonts...")

        # ~/.local and ~/.local/share may not exist yet; whatever gets created belongs to the user.
        make_user_dirs(str(ctx.font_dir), ctx.user.uid, ctx.user.gid, dry_run=ctx.dry_run)

        logger.info("Copying fonts to %s...", ctx.font_dir)
        copied = copy_tree(
            str(ctx.assets_dir / "fonts"),
            str(ctx.font_dir),
            patterns=ctx.manifest.font_patterns,
            dry_run=ctx.dry_run,
        )
        logger.info("Copied %d font file(s)", len(copied))

        logger.info("Refreshing font cache...")
        r = run_cmd(["fc-cache", "-f", "-v"], check=False, dry_run=ctx.dry_run)
        if r.ok:
            logger.info("Font cache refreshed.")
        else:
            logger.warning(
                "fc-cache command failed (%s). Fonts might not be immediately available: %s",
                r.returncode,
                r.stderr.strip(),
            )
