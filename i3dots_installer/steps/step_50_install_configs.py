from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..context import InstallContext
from ..lib.assets import chown_tree, copy_file, copy_tree, make_user_dirs, mark_executable
from ..lib.keyvalue import count_active, set_top_level_key
from ..pipeline import Severity

logger = logging.getLogger(__name__)

FIREFOX_PROFILE_SUFFIXES = (".default-release", ".default")


def find_firefox_profile(firefox_dir: Path) -> Optional[Path]:
    """Return the default Firefox profile dir, preferring *.default-release."""

    if not firefox_dir.is_dir():
        return None
    children = sorted(p for p in firefox_dir.iterdir() if p.is_dir())
    for suffix in FIREFOX_PROFILE_SUFFIXES:
        for child in children:
            if child.name.endswith(suffix):
                return child
    return None


class InstallConfigsStep:
    step_id = "50_install_configs"
    severity = Severity.RECOVERABLE

    def run(self, ctx: InstallContext) -> None:
        logger.info("Installing configurations...")
        src = ctx.assets_dir / "src"
        cfg = ctx.config_dir
        uid, gid = ctx.user.uid, ctx.user.gid

        for subsystem, entries in ctx.manifest.configs.items():
            logger.info("Copying %s config...", subsystem)
            dst = cfg / subsystem
            make_user_dirs(str(dst), uid, gid, dry_run=ctx.dry_run)
            for entry in entries:
                item = src / subsystem / entry
                if item.is_dir():
                    copy_tree(str(item), str(dst / entry), dry_run=ctx.dry_run)
                else:
                    copy_file(str(item), str(dst), dry_run=ctx.dry_run)
            mark_executable(str(dst), dry_run=ctx.dry_run)

        chown_tree(str(cfg), uid, gid, dry_run=ctx.dry_run)

        self._customize_firefox(ctx)
        self._install_greeter_theme(ctx)

        chown_tree(str(cfg), uid, gid, dry_run=ctx.dry_run)

    def _customize_firefox(self, ctx: InstallContext) -> None:
        if not ctx.firefox_dir.is_dir():
            logger.info("Firefox directory not found. Skipping Firefox customization.")
            return

        profile = find_firefox_profile(ctx.firefox_dir)
        if profile is None:
            logger.info("Could not find Firefox default profile directory. Skipping Firefox customization.")
            return

        logger.info("Found Firefox profile: %s", profile)
        src = ctx.assets_dir / "src" / "firefox"
        chrome = profile / "chrome"
        copy_file(str(src / "chrome" / "userChrome.css"), str(chrome), dry_run=ctx.dry_run)
        copy_file(str(src / "chrome" / "userContent.css"), str(chrome), dry_run=ctx.dry_run)
        copy_file(str(src / "user.js"), str(profile), dry_run=ctx.dry_run)

        chown_tree(str(chrome), ctx.user.uid, ctx.user.gid, dry_run=ctx.dry_run)
        chown_tree(str(profile / "user.js"), ctx.user.uid, ctx.user.gid, dry_run=ctx.dry_run)
        logger.info("Firefox customization applied.")

    def _install_greeter_theme(self, ctx: InstallContext) -> None:
        themes_dir = Path(ctx.system.greeter_themes_dir)
        theme = ctx.manifest.greeter_theme
        if not themes_dir.is_dir():
            logger.warning(
                "%s themes directory (%s) not found. Was %s installed correctly?",
                ctx.manifest.greeter_name,
                themes_dir,
                ctx.manifest.greeter_name,
            )
            return

        logger.info("Copying %s theme...", theme)
        copy_tree(str(ctx.assets_dir / "src" / "web-greeter" / theme), str(ctx.greeter_theme_dir), dry_run=ctx.dry_run)

        config = Path(ctx.system.greeter_config)
        if not config.is_file():
            logger.warning("Greeter config (%s) not found. Cannot set theme automatically.", config)
            return

        logger.info("Setting greeter theme to %s in %s...", theme, config)
        text = config.read_text(encoding="utf-8", errors="surrogateescape")
        logger.debug("%d active theme entries before edit", count_active(text, "theme"))
        updated = set_top_level_key(text, "theme", theme)
        if updated == text:
            logger.info("Greeter theme already set.")
        elif ctx.dry_run:
            logger.info("Would write %s", config)
        else:
            config.write_text(updated, encoding="utf-8", errors="surrogateescape")
            logger.info("Greeter theme set.")
