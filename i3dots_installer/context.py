from __future__ import annotations

import logging
import os
import pwd
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .env import PATHS, SystemPaths
from .errors import ConfigurationError
from .lib.command import command_exists, run_cmd
from .manifest import Manifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetUser:
    name: str
    uid: int
    gid: int
    home: Path


@dataclass(frozen=True)
class InstallContext:
    """Everything a step needs, resolved once at start of the run."""

    user: TargetUser
    manifest: Manifest
    assets_dir: Path
    system: SystemPaths = field(default_factory=SystemPaths)
    dry_run: bool = False

    @property
    def home(self) -> Path:
        return self.user.home

    @property
    def config_dir(self) -> Path:
        return self.user.home / ".config"

    @property
    def font_dir(self) -> Path:
        return self.user.home / ".local" / "share" / "fonts"

    @property
    def firefox_dir(self) -> Path:
        return self.user.home / ".mozilla" / "firefox"

    @property
    def greeter_theme_dir(self) -> Path:
        return Path(self.system.greeter_themes_dir) / self.manifest.greeter_theme


def require_root(euid: Optional[int] = None) -> None:
    if euid is None:
        euid = os.geteuid()
    if euid != 0:
        raise PermissionError("Please run as root or with sudo")


def _logname() -> Optional[str]:
    if not command_exists("logname"):
        return None
    r = run_cmd(["logname"], check=False, quiet=True)
    name = r.stdout.strip()
    return name if r.ok and name else None


def resolve_target_user(environ: Optional[Mapping[str, str]] = None) -> TargetUser:
    """Find the non-root user the desktop is being installed for.

    ``SUDO_USER`` wins; otherwise the login name of the controlling
    terminal is used.
    """

    env = os.environ if environ is None else environ
    name = (env.get("SUDO_USER") or "").strip()
    if not name:
        name = _logname() or ""
        if not name:
            raise ConfigurationError("Cannot determine the original user. Please run with sudo.")
        logger.warning("Running as root, setting user to %s", name)

    try:
        pw = pwd.getpwnam(name)
    except KeyError as e:
        raise ConfigurationError(f"User {name!r} has no passwd entry") from e

    return TargetUser(name=pw.pw_name, uid=pw.pw_uid, gid=pw.pw_gid, home=Path(pw.pw_dir))


def build_context(
    *,
    user: TargetUser,
    manifest: Manifest,
    assets_dir: str,
    system: SystemPaths = PATHS,
    dry_run: bool = False,
) -> InstallContext:
    assets = Path(assets_dir)
    if not assets.is_dir():
        raise ConfigurationError(f"Assets directory not found: {assets_dir}")
    return InstallContext(user=user, manifest=manifest, assets_dir=assets, system=system, dry_run=dry_run)
