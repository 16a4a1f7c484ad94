from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base class for failures the installer knows how to report."""


class ConfigurationError(InstallerError):
    pass


class UnsupportedPackageManagerError(InstallerError):
    pass


class GreeterBuildError(InstallerError):
    pass


class CommandError(InstallerError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if stderr:
            msg += f"\n{stderr}"
        super().__init__(msg)
