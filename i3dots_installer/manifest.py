from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from .errors import ConfigurationError
from .lib.pkg import Descriptor, PackageManager


def package_root() -> Path:
    # manifests/ and assets/ ship inside the package as package data
    return Path(__file__).resolve().parent


DEFAULT_MANIFEST = str(package_root() / "manifests" / "desktop.yaml")
DEFAULT_ASSETS = str(package_root() / "assets")

DEFAULT_CONFIGS: Dict[str, List[str]] = {
    "i3": ["config"],
    "polybar": ["config.ini", "scripts"],
    "picom": ["picom.conf"],
}


def _descriptor(entry: Any) -> Descriptor:
    if isinstance(entry, str):
        return Descriptor(name=entry.strip())
    if isinstance(entry, dict) and entry.get("name"):
        command = entry.get("command")
        return Descriptor(name=str(entry["name"]).strip(), command=str(command) if command else None)
    raise ConfigurationError(f"Invalid package entry: {entry!r}")


@dataclass(frozen=True)
class Manifest:
    """Declarative description of what gets installed. Data only."""

    raw: Dict[str, Any]

    @property
    def core_packages(self) -> List[Descriptor]:
        pkgs = (self.raw.get("packages") or {}).get("core") or []
        return [_descriptor(p) for p in pkgs]

    def build_packages(self, pm: PackageManager) -> List[Descriptor] | None:
        """Greeter build dependencies for ``pm``; None when the manager has none."""

        build = (self.raw.get("packages") or {}).get("build") or {}
        if pm.name not in build:
            return None
        return [_descriptor(p) for p in (build.get(pm.name) or [])]

    @property
    def greeter_name(self) -> str:
        return str((self.raw.get("greeter") or {}).get("name") or "web-greeter")

    @property
    def greeter_repo(self) -> str:
        return str((self.raw.get("greeter") or {}).get("repo") or "https://github.com/JezerM/web-greeter.git")

    @property
    def greeter_theme(self) -> str:
        return str((self.raw.get("greeter") or {}).get("theme") or "gruvbox")

    @property
    def lightdm_section(self) -> str:
        return str((self.raw.get("lightdm") or {}).get("section") or "Seat:*")

    @property
    def lightdm_key(self) -> str:
        return str((self.raw.get("lightdm") or {}).get("key") or "greeter-session")

    @property
    def lightdm_service(self) -> str:
        return str((self.raw.get("lightdm") or {}).get("service") or "lightdm")

    @property
    def configs(self) -> Dict[str, List[str]]:
        """Subsystem name -> entries under ``assets/src/<name>`` to install."""

        raw = self.raw.get("configs")
        if raw is None:
            return {k: list(v) for k, v in DEFAULT_CONFIGS.items()}
        if not isinstance(raw, dict):
            raise ConfigurationError("manifest: configs must map subsystem -> list of entries")
        out: Dict[str, List[str]] = {}
        for name, entries in raw.items():
            if not isinstance(entries, list):
                raise ConfigurationError(f"manifest: configs.{name} must be a list")
            out[str(name)] = [str(e) for e in entries]
        return out

    @property
    def config_subsystems(self) -> List[str]:
        return list(self.configs)

    @property
    def font_patterns(self) -> List[str]:
        return [str(p) for p in ((self.raw.get("fonts") or {}).get("patterns") or ["*.ttf", "*.otf"])]


def load_manifest(path: str = DEFAULT_MANIFEST) -> Manifest:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Manifest not found: {path}")

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigurationError("manifest must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("PyYAML is required to read the desktop manifest") from e

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid manifest {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Manifest must be a mapping/dict: {p}")

    return Manifest(raw=raw)
