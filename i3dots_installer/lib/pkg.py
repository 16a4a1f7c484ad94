from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from ..errors import UnsupportedPackageManagerError
from .command import command_exists, run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Descriptor:
    """An optional dependency: a package name plus how to detect it."""

    name: str
    command: str | None = None

    @property
    def detect_command(self) -> str:
        if self.command:
            return self.command
        for suffix in ("-devel", "-dev"):
            if self.name.endswith(suffix):
                return self.name[: -len(suffix)]
        return self.name


@dataclass(frozen=True)
class PackageManager:
    name: str
    executable: str
    install_argv: Tuple[str, ...]
    refresh_argv: Tuple[str, ...] = ()


APT = PackageManager(
    name="apt",
    executable="apt-get",
    install_argv=("apt-get", "install", "-y"),
    refresh_argv=("apt-get", "update"),
)
PACMAN = PackageManager(name="pacman", executable="pacman", install_argv=("pacman", "-S", "--needed", "--noconfirm"))
DNF = PackageManager(name="dnf", executable="dnf", install_argv=("dnf", "install", "-y"))
ZYPPER = PackageManager(name="zypper", executable="zypper", install_argv=("zypper", "--non-interactive", "install"))

# Probe order matters: the first manager found wins.
SUPPORTED_MANAGERS: Tuple[PackageManager, ...] = (APT, PACMAN, DNF, ZYPPER)

# Read-only package database queries, tried when the detection command is absent.
_DB_QUERIES: Tuple[Tuple[str, str], ...] = (
    ("dpkg", "-s"),
    ("rpm", "-q"),
    ("pacman", "-Q"),
)


def detect_package_manager(candidates: Sequence[PackageManager] = SUPPORTED_MANAGERS) -> PackageManager:
    for pm in candidates:
        if command_exists(pm.executable):
            logger.info("Detected package manager: %s", pm.name)
            return pm
    names = ", ".join(pm.name for pm in candidates)
    raise UnsupportedPackageManagerError(f"No supported package manager ({names}) found")


def is_installed(descriptor: Descriptor) -> bool:
    """Return True if the command exists or any package database knows the package."""

    if command_exists(descriptor.detect_command):
        return True
    for tool, flag in _DB_QUERIES:
        if command_exists(tool) and run_cmd([tool, flag, descriptor.name], check=False, quiet=True).ok:
            return True
    return False


class PackageInstaller:
    """Installs single packages through one backend, one attempt each."""

    def __init__(self, pm: PackageManager, *, dry_run: bool = False) -> None:
        self.pm = pm
        self.dry_run = dry_run
        self._refreshed = False

    def _refresh(self) -> None:
        if self._refreshed or not self.pm.refresh_argv:
            return
        self._refreshed = True
        r = run_cmd(self.pm.refresh_argv, check=False, dry_run=self.dry_run)
        if not r.ok:
            logger.warning("Package index refresh failed (%s): %s; continuing", r.returncode, r.stderr.strip())

    def install(self, package: str) -> bool:
        logger.info("Attempting to install %s...", package)
        self._refresh()
        r = run_cmd([*self.pm.install_argv, package], check=False, dry_run=self.dry_run)
        if r.ok:
            logger.info("%s installed successfully.", package)
        else:
            logger.warning("Failed to install %s (%s): %s", package, r.returncode, r.stderr.strip())
        return r.ok


def install_missing(installer: PackageInstaller, descriptors: Iterable[Descriptor]) -> List[str]:
    """Install every unsatisfied descriptor, returning the names that failed."""

    failed: List[str] = []
    for d in descriptors:
        if is_installed(d):
            logger.info("%s seems to be installed.", d.name)
            continue
        if not installer.install(d.name):
            failed.append(d.name)
    return failed
