from __future__ import annotations

import argparse
import logging
from typing import Optional

from .context import build_context, require_root, resolve_target_user
from .env import PATHS, SystemPaths
from .errors import InstallerError
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .manifest import DEFAULT_ASSETS, DEFAULT_MANIFEST, load_manifest
from .pipeline import run_pipeline
from .steps import (
    CleanupStep,
    ConfigureLightDMStep,
    InstallConfigsStep,
    InstallDependenciesStep,
    InstallFontsStep,
    InstallGreeterStep,
    SetPermissionsStep,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


def build_steps():
    return [
        CleanupStep(),
        InstallDependenciesStep(),
        InstallGreeterStep(),
        InstallFontsStep(),
        InstallConfigsStep(),
        ConfigureLightDMStep(),
        SetPermissionsStep(),
    ]


def run(
    *,
    log_path: str = DEFAULT_LOG_PATH,
    manifest_path: str = DEFAULT_MANIFEST,
    assets_dir: str = DEFAULT_ASSETS,
    system: SystemPaths = PATHS,
    dry_run: bool = False,
    skip_cleanup: bool = False,
    verbose: bool = False,
) -> int:
    """Run the whole installation. Returns the process exit status."""

    configure_logging(log_path=log_path, console_level=logging.DEBUG if verbose else logging.INFO)
    logger.info("Starting i3 dotfiles installation...")

    try:
        require_root()
        user = resolve_target_user()
        ctx = build_context(
            user=user,
            manifest=load_manifest(manifest_path),
            assets_dir=assets_dir,
            system=system,
            dry_run=dry_run,
        )
        logger.info("Installing for user=%s home=%s dry_run=%s", user.name, user.home, dry_run)

        skip = [CleanupStep.step_id] if skip_cleanup else []
        result = run_pipeline(ctx=ctx, steps=build_steps(), skip=skip)
    except (InstallerError, PermissionError) as e:
        logger.error("%s", e)
        return EXIT_FATAL
    except Exception:
        logger.exception("Installer failed")
        return EXIT_FATAL

    if not result.ok:
        logger.warning("Completed with warnings; failed steps: %s", ", ".join(result.failed_steps))
    else:
        logger.info("Installation completed successfully!")
    logger.info("Please REBOOT your system for all changes, especially LightDM, to take effect properly.")
    logger.info("After rebooting, select 'i3' from the login screen session menu (if available).")
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="i3dots-install", description="Install the i3 desktop, greeter and dotfiles")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--manifest", default=DEFAULT_MANIFEST, help="Desktop manifest (yaml)")
    p.add_argument("--assets", default=DEFAULT_ASSETS, help="Directory holding bundled fonts and configs")
    p.add_argument("--dry-run", action="store_true", help="Log commands and writes without executing them")
    p.add_argument("--skip-cleanup", action="store_true", help="Keep existing i3/polybar/picom configs")
    p.add_argument("-v", "--verbose", action="store_true", help="Log command output")

    args = p.parse_args(argv)

    return run(
        log_path=args.log,
        manifest_path=args.manifest,
        assets_dir=args.assets,
        dry_run=bool(args.dry_run),
        skip_cleanup=bool(args.skip_cleanup),
        verbose=bool(args.verbose),
    )


if __name__ == "__main__":
    raise SystemExit(main())
