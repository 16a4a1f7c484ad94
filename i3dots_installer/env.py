from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SystemPaths:
    greeter_themes_dir: str = "/usr/share/web-greeter/themes"
    greeter_config: str = "/etc/lightdm/web-greeter.yml"
    lightdm_config: str = "/etc/lightdm/lightdm.conf"
    tmp_root: str = "/tmp"
    log_default: str = "/var/log/i3dots-installer.log"


PATHS = SystemPaths()
