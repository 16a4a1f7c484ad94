import dataclasses
import logging
import os
import shutil
import stat
from pathlib import Path

import pytest

from i3dots_installer.errors import GreeterBuildError, UnsupportedPackageManagerError
from i3dots_installer.lib import assets as assets_mod
from i3dots_installer.lib.inifile import IniDocument
from i3dots_installer.lib.keyvalue import count_active
from i3dots_installer.manifest import DEFAULT_ASSETS, load_manifest
from i3dots_installer.steps import (
    CleanupStep,
    ConfigureLightDMStep,
    InstallConfigsStep,
    InstallDependenciesStep,
    InstallFontsStep,
    InstallGreeterStep,
    SetPermissionsStep,
)
from i3dots_installer.steps.step_30_install_greeter import build_dir_for
from i3dots_installer.steps.step_50_install_configs import find_firefox_profile
from i3dots_installer.steps.step_70_set_permissions import intermediate_dirs


def _snapshot(root: Path) -> dict:
    out = {}
    for p in sorted(root.rglob("*")):
        rel = str(p.relative_to(root))
        if p.is_file():
            out[rel] = (p.read_bytes(), stat.S_IMODE(p.stat().st_mode))
        else:
            out[rel] = None
    return out


@pytest.fixture
def assets(tmp_path: Path) -> Path:
    """A private copy of the bundled assets with a font added."""

    dst = tmp_path / "assets"
    shutil.copytree(DEFAULT_ASSETS, dst)
    (dst / "fonts" / "nerd").mkdir()
    (dst / "fonts" / "nerd" / "JetBrainsMono.ttf").write_bytes(b"\x00\x01ttf")
    return dst


@pytest.fixture
def actx(ctx, assets):
    return dataclasses.replace(ctx, assets_dir=assets)


# --- cleanup


def test_cleanup_removes_managed_dirs_only(ctx):
    for name in ("i3", "polybar", "picom", "rofi"):
        (ctx.config_dir / name).mkdir(parents=True)
    themes = Path(ctx.system.greeter_themes_dir)
    (themes / "gruvbox").mkdir(parents=True)
    (themes / "default").mkdir()

    CleanupStep().run(ctx)

    assert sorted(p.name for p in ctx.config_dir.iterdir()) == ["rofi"]
    assert [p.name for p in themes.iterdir()] == ["default"]


def test_cleanup_with_nothing_to_remove(ctx):
    CleanupStep().run(ctx)
    CleanupStep().run(ctx)
    assert not ctx.config_dir.exists()


# --- dependencies


def test_dependencies_use_detected_manager(ctx, host):
    host.commands = {"pacman", "i3"}
    host.fail("pacman", "-Q")
    InstallDependenciesStep().run(ctx)

    installs = host.called("pacman", "-S")
    assert installs
    assert all(c[:4] == ["pacman", "-S", "--needed", "--noconfirm"] for c in installs)
    names = [c[-1] for c in installs]
    assert names[-3:] == ["webkit2gtk", "base-devel", "lightdm"]
    assert "polybar" in names
    # i3 already on PATH: detected through its command, not installed.
    assert "i3-wm" not in names


def test_dependencies_continue_after_failures(ctx, host):
    host.commands = {"dnf", "i3"}
    host.fail("dnf", "install", "-y", "polybar")
    host.fail("dnf", "install", "-y", "picom")
    InstallDependenciesStep().run(ctx)
    names = [c[-1] for c in host.called("dnf", "install")]
    assert names.index("polybar") < names.index("picom") < names.index("webkitgtk4-devel")


def test_dependencies_zypper_cannot_build_greeter(ctx, host):
    host.commands = {"zypper"}
    with pytest.raises(UnsupportedPackageManagerError):
        InstallDependenciesStep().run(ctx)
    assert host.calls == []


def test_dependencies_no_package_manager(ctx, host):
    with pytest.raises(UnsupportedPackageManagerError):
        InstallDependenciesStep().run(ctx)


def test_i3_falls_back_to_i3_wm(ctx, host):
    host.commands = {"apt-get"}
    host.fail("apt-get", "install", "-y", "i3")
    InstallDependenciesStep().run(ctx)

    tail = host.calls[-2:]
    assert tail == [["apt-get", "install", "-y", "i3"], ["apt-get", "install", "-y", "i3-wm"]]
    assert host.called("apt-get", "update") == [["apt-get", "update"]]


# --- greeter


def test_greeter_clone_and_install(ctx, host):
    InstallGreeterStep().run(ctx)

    build_dir = build_dir_for(ctx)
    src = str(build_dir / "web-greeter")
    assert host.calls == [
        ["git", "clone", "--recursive", "https://github.com/JezerM/web-greeter.git", src],
        ["make", "install"],
    ]
    assert host.cwds[-1] == src
    assert not build_dir.exists()


def test_greeter_dry_run_leaves_no_trace(ctx, host):
    InstallGreeterStep().run(dataclasses.replace(ctx, dry_run=True))
    assert host.calls == []
    assert not Path(ctx.system.tmp_root).exists()


def test_greeter_build_dir_is_per_process(ctx):
    assert build_dir_for(ctx, 100) != build_dir_for(ctx, 101)
    assert str(os.getpid()) in build_dir_for(ctx).name


@pytest.mark.parametrize("failing", [("git", "clone"), ("make", "install")])
def test_greeter_failure_cleans_up(ctx, host, failing):
    host.fail(*failing)
    with pytest.raises(GreeterBuildError):
        InstallGreeterStep().run(ctx)
    assert not build_dir_for(ctx).exists()
    if failing[0] == "git":
        assert host.called("make") == []


# --- fonts


def test_fonts_copied_and_cache_refreshed(actx, host):
    InstallFontsStep().run(actx)
    assert (actx.font_dir / "nerd" / "JetBrainsMono.ttf").read_bytes() == b"\x00\x01ttf"
    assert not (actx.font_dir / "README.md").exists()
    assert host.calls == [["fc-cache", "-f", "-v"]]


def test_font_cache_failure_is_not_an_error(actx, host):
    host.fail("fc-cache")
    InstallFontsStep().run(actx)
    assert (actx.font_dir / "nerd" / "JetBrainsMono.ttf").exists()


def test_fonts_parent_dirs_belong_to_the_user(actx, host, monkeypatch):
    chowned = []
    monkeypatch.setattr(assets_mod.os, "chown", lambda path, uid, gid, **kw: chowned.append(Path(path)))
    local = actx.home / ".local"

    InstallFontsStep().run(actx)
    assert chowned == [local, local / "share", actx.font_dir]

    chowned.clear()
    SetPermissionsStep().run(actx)
    assert local in chowned
    assert local / "share" in chowned
    assert actx.font_dir / "nerd" / "JetBrainsMono.ttf" in chowned


# --- configs


def test_configs_installed_without_firefox(ctx):
    InstallConfigsStep().run(ctx)

    cfg = ctx.config_dir
    assert (cfg / "i3" / "config").is_file()
    assert (cfg / "polybar" / "config.ini").is_file()
    assert (cfg / "picom" / "picom.conf").is_file()
    script = cfg / "polybar" / "scripts" / "weather" / "weather.sh"
    assert script.is_file()
    assert os.access(script, os.X_OK)
    assert not (ctx.home / ".mozilla").exists()


def test_configs_follow_the_manifest(ctx, tmp_path):
    p = tmp_path / "only-i3.yaml"
    p.write_text("configs:\n  i3: [config]\n", encoding="utf-8")
    only_i3 = dataclasses.replace(ctx, manifest=load_manifest(str(p)))
    mine = ctx.config_dir / "polybar" / "mine.ini"
    mine.parent.mkdir(parents=True)
    mine.write_text("x", encoding="utf-8")

    CleanupStep().run(only_i3)
    InstallConfigsStep().run(only_i3)

    assert (ctx.config_dir / "i3" / "config").is_file()
    assert sorted(d.name for d in ctx.config_dir.iterdir()) == ["i3", "polybar"]
    assert [f.name for f in mine.parent.iterdir()] == ["mine.ini"]


def test_firefox_profile_without_default_is_skipped(ctx):
    (ctx.firefox_dir / "abc.dev-edition").mkdir(parents=True)
    InstallConfigsStep().run(ctx)
    assert not (ctx.firefox_dir / "abc.dev-edition" / "chrome").exists()


def test_firefox_default_release_preferred(ctx):
    (ctx.firefox_dir / "aaa.default").mkdir(parents=True)
    (ctx.firefox_dir / "zzz.default-release").mkdir()
    assert find_firefox_profile(ctx.firefox_dir) == ctx.firefox_dir / "zzz.default-release"

    InstallConfigsStep().run(ctx)

    profile = ctx.firefox_dir / "zzz.default-release"
    assert (profile / "chrome" / "userChrome.css").is_file()
    assert (profile / "chrome" / "userContent.css").is_file()
    assert (profile / "user.js").is_file()
    assert not (ctx.firefox_dir / "aaa.default" / "chrome").exists()


def test_firefox_plain_default_profile(ctx):
    (ctx.firefox_dir / "xyz.default").mkdir(parents=True)
    assert find_firefox_profile(ctx.firefox_dir) == ctx.firefox_dir / "xyz.default"


def test_greeter_theme_installed_and_selected(ctx):
    themes = Path(ctx.system.greeter_themes_dir)
    themes.mkdir(parents=True)
    config = Path(ctx.system.greeter_config)
    config.parent.mkdir(parents=True)
    config.write_text("# theme: old\n", encoding="utf-8")

    InstallConfigsStep().run(ctx)

    assert (themes / "gruvbox" / "index.html").is_file()
    text = config.read_text(encoding="utf-8")
    assert text == "theme: gruvbox\n"
    assert count_active(text, "theme") == 1


def test_greeter_config_keeps_undecodable_bytes(ctx):
    Path(ctx.system.greeter_themes_dir).mkdir(parents=True)
    config = Path(ctx.system.greeter_config)
    config.parent.mkdir(parents=True)
    config.write_bytes(b"# caf\xe9\ntheme: old\n")

    InstallConfigsStep().run(ctx)

    assert config.read_bytes() == b"# caf\xe9\ntheme: gruvbox\n"


def test_missing_theme_dir_is_not_an_error(ctx):
    InstallConfigsStep().run(ctx)
    assert not Path(ctx.system.greeter_themes_dir).exists()


def test_missing_greeter_config_is_not_an_error(ctx):
    Path(ctx.system.greeter_themes_dir).mkdir(parents=True)
    InstallConfigsStep().run(ctx)
    assert not Path(ctx.system.greeter_config).exists()


# --- lightdm


def test_lightdm_config_created_when_missing(ctx, host):
    ConfigureLightDMStep().run(ctx)

    path = Path(ctx.system.lightdm_config)
    doc = IniDocument.parse(path.read_text(encoding="utf-8"))
    assert doc.has_section("Seat:*")
    assert doc.count("Seat:*", "greeter-session") == 1
    assert doc.get("Seat:*", "greeter-session") == "web-greeter"


def test_lightdm_key_appended_under_section(ctx, host):
    path = Path(ctx.system.lightdm_config)
    path.parent.mkdir(parents=True)
    path.write_text("[Seat:*]\n", encoding="utf-8")

    ConfigureLightDMStep().run(ctx)
    ConfigureLightDMStep().run(ctx)

    assert path.read_text(encoding="utf-8") == "[Seat:*]\ngreeter-session=web-greeter\n"


def test_lightdm_config_keeps_undecodable_bytes(ctx, host):
    path = Path(ctx.system.lightdm_config)
    path.parent.mkdir(parents=True)
    path.write_bytes(b"# caf\xe9\n[Seat:*]\n")

    ConfigureLightDMStep().run(ctx)

    assert path.read_bytes() == b"# caf\xe9\n[Seat:*]\ngreeter-session=web-greeter\n"


def test_lightdm_duplicate_keys_reported_and_dropped(ctx, host, caplog):
    path = Path(ctx.system.lightdm_config)
    path.parent.mkdir(parents=True)
    path.write_text("[Seat:*]\ngreeter-session=a\ngreeter-session=b\n", encoding="utf-8")

    with caplog.at_level(logging.INFO):
        ConfigureLightDMStep().run(ctx)

    assert path.read_text(encoding="utf-8") == "[Seat:*]\ngreeter-session=web-greeter\n"
    assert "Dropping 1 duplicate greeter-session lines in [Seat:*]." in caplog.text


def test_lightdm_service_enabled_with_systemctl(ctx, host):
    host.commands = {"systemctl"}
    ConfigureLightDMStep().run(ctx)
    assert host.calls == [["systemctl", "enable", "lightdm"]]


def test_lightdm_service_failure_is_not_an_error(ctx, host):
    host.commands = {"systemctl"}
    host.fail("systemctl")
    ConfigureLightDMStep().run(ctx)
    assert Path(ctx.system.lightdm_config).is_file()


def test_lightdm_without_systemctl(ctx, host):
    ConfigureLightDMStep().run(ctx)
    assert host.calls == []


# --- permissions


def test_permissions_reassert_executable_bit(ctx):
    scripts = ctx.config_dir / "polybar" / "scripts"
    scripts.mkdir(parents=True)
    script = scripts / "launch.sh"
    script.write_text("#!/bin/sh\n", encoding="utf-8")
    script.chmod(0o644)
    (scripts / "notes.txt").write_text("x", encoding="utf-8")

    SetPermissionsStep().run(ctx)

    assert stat.S_IMODE(script.stat().st_mode) == 0o755
    assert stat.S_IMODE((scripts / "notes.txt").stat().st_mode) & 0o111 == 0


def test_permissions_with_nothing_installed(ctx):
    SetPermissionsStep().run(ctx)


def test_intermediate_dirs():
    home = Path("/home/alice")
    assert intermediate_dirs(home, home / ".local/share/fonts") == [home / ".local", home / ".local/share"]
    assert intermediate_dirs(home, home / ".config") == []
    assert intermediate_dirs(home, Path("/usr/share/fonts")) == []


def test_permissions_leave_the_rest_of_local_alone(ctx, monkeypatch):
    other = ctx.home / ".local" / "bin" / "tool"
    other.parent.mkdir(parents=True)
    other.write_text("", encoding="utf-8")
    ctx.font_dir.mkdir(parents=True)
    chowned = []
    monkeypatch.setattr(assets_mod.os, "chown", lambda path, uid, gid, **kw: chowned.append(Path(path)))

    SetPermissionsStep().run(ctx)

    assert chowned == [ctx.font_dir, ctx.home / ".local", ctx.home / ".local" / "share"]


# --- whole-run idempotence


def test_running_twice_matches_running_once(actx, host, tmp_path):
    host.commands = {"systemctl"}
    Path(actx.system.greeter_themes_dir).mkdir(parents=True)
    config = Path(actx.system.greeter_config)
    config.parent.mkdir(parents=True, exist_ok=True)
    config.write_text("greeter:\n    # theme: old\n    debug_mode: false\n", encoding="utf-8")
    (actx.firefox_dir / "p.default-release").mkdir(parents=True)

    steps = [CleanupStep(), InstallFontsStep(), InstallConfigsStep(), ConfigureLightDMStep(), SetPermissionsStep()]

    for step in steps:
        step.run(actx)
    first = {name: _snapshot(tmp_path / name) for name in ("home", "usr", "etc")}

    for step in steps:
        step.run(actx)
    second = {name: _snapshot(tmp_path / name) for name in ("home", "usr", "etc")}

    assert first == second
    assert config.read_text(encoding="utf-8") == "greeter:\n    theme: gruvbox\n    debug_mode: false\n"
