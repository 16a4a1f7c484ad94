import logging
import os
import subprocess
from pathlib import Path

import pytest

from i3dots_installer.context import InstallContext, TargetUser
from i3dots_installer.env import SystemPaths
from i3dots_installer.lib import command
from i3dots_installer.manifest import DEFAULT_ASSETS, load_manifest


class FakeHost:
    """Stands in for PATH lookups and subprocesses.

    Every command succeeds unless a failing argv prefix was registered.
    """

    def __init__(self) -> None:
        self.commands: set[str] = set()
        self.calls: list[list[str]] = []
        self.cwds: list[str | None] = []
        self._returncodes: list[tuple[tuple[str, ...], int]] = []
        self._stdout: list[tuple[tuple[str, ...], str]] = []

    def fail(self, *prefix: str, rc: int = 1) -> None:
        self._returncodes.append((prefix, rc))

    def output(self, *prefix: str, stdout: str) -> None:
        self._stdout.append((prefix, stdout))

    def which(self, name, *args, **kwargs):
        return f"/usr/bin/{name}" if name in self.commands else None

    def run(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.cwds.append(kwargs.get("cwd"))
        rc = 0
        for prefix, code in self._returncodes:
            if tuple(argv[:len(prefix)]) == prefix:
                rc = code
        out = ""
        for prefix, text in self._stdout:
            if tuple(argv[:len(prefix)]) == prefix:
                out = text
        return subprocess.CompletedProcess(argv, rc, stdout=out, stderr="boom" if rc else "")

    def called(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if tuple(c[:len(prefix)]) == prefix]


@pytest.fixture
def host(monkeypatch: pytest.MonkeyPatch) -> FakeHost:
    fake = FakeHost()
    monkeypatch.setattr(command.shutil, "which", fake.which)
    monkeypatch.setattr(command.subprocess, "run", fake.run)
    return fake


@pytest.fixture(autouse=True)
def _reset_logging():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for h in root.handlers[:]:
        if h not in before:
            root.removeHandler(h)
            h.close()
    for attr in ("_i3dots_configured", "_i3dots_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
    root.setLevel(level)


@pytest.fixture
def system(tmp_path: Path) -> SystemPaths:
    return SystemPaths(
        greeter_themes_dir=str(tmp_path / "usr/share/web-greeter/themes"),
        greeter_config=str(tmp_path / "etc/lightdm/web-greeter.yml"),
        lightdm_config=str(tmp_path / "etc/lightdm/lightdm.conf"),
        tmp_root=str(tmp_path / "tmp"),
        log_default=str(tmp_path / "log/i3dots-installer.log"),
    )


@pytest.fixture
def user(tmp_path: Path) -> TargetUser:
    home = tmp_path / "home" / "alice"
    home.mkdir(parents=True)
    return TargetUser(name="alice", uid=os.getuid(), gid=os.getgid(), home=home)


@pytest.fixture(scope="session")
def manifest():
    return load_manifest()


@pytest.fixture
def ctx(user: TargetUser, manifest, system: SystemPaths) -> InstallContext:
    return InstallContext(user=user, manifest=manifest, assets_dir=Path(DEFAULT_ASSETS), system=system)
