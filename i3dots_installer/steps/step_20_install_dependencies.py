from __future__ import annotations

import logging

from ..context import InstallContext
from ..errors import UnsupportedPackageManagerError
from ..lib.command import command_exists
from ..lib.pkg import PackageInstaller, detect_package_manager, install_missing
from ..pipeline import Severity

logger = logging.getLogger(__name__)

# Distros disagree on whether the i3 package is "i3" or "i3-wm".
I3_PACKAGE_CANDIDATES = ("i3", "i3-wm")


class InstallDependenciesStep:
    step_id = "20_install_dependencies"
    severity = Severity.FATAL

    def run(self, ctx: InstallContext) -> None:
        logger.info("Checking and installing dependencies...")

        pm = detect_package_manager()
        build = ctx.manifest.build_packages(pm)
        if build is None:
            raise UnsupportedPackageManagerError(
                f"Unsupported distribution for {ctx.manifest.greeter_name} build dependencies ({pm.name})"
            )

        installer = PackageInstaller(pm, dry_run=ctx.dry_run)
        failed = install_missing(installer, [*ctx.manifest.core_packages, *build])

        if not command_exists("i3"):
            logger.warning("i3 command not found, attempting to install the i3 package...")
            for candidate in I3_PACKAGE_CANDIDATES:
                if installer.install(candidate):
                    break
            else:
                failed.append("i3")

        if failed:
            logger.warning("Packages that failed to install: %s", ", ".join(failed))
        else:
            logger.info("All dependencies satisfied (package manager=%s)", pm.name)
