from __future__ import annotations

import logging
from pathlib import Path

from ..context import InstallContext
from ..lib.command import command_exists, run_cmd
from ..lib.inifile import IniDocument
from ..pipeline import Severity

logger = logging.getLogger(__name__)


def configure_greeter_session(path: Path, *, section: str, key: str, value: str, dry_run: bool = False) -> bool:
    """Make ``path`` select the greeter. Returns True if the file changed."""

    existed = path.is_file()
    if existed:
        original = path.read_text(encoding="utf-8", errors="surrogateescape")
    else:
        logger.warning("LightDM config file (%s) not found. Creating a basic one.", path)
        original = f"[{section}]\n"

    doc = IniDocument.parse(original)
    if doc.ensure_section(section):
        logger.warning("[%s] section not found in %s. Adding it.", section, path)

    previous = doc.get(section, key)
    dupes = doc.count(section, key) - 1
    if dupes > 0:
        logger.info("Dropping %d duplicate %s lines in [%s].", dupes, key, section)
    doc.set(section, key, value)
    rendered = doc.render()

    if existed and rendered == original:
        logger.info("%s already set to %s in %s", key, value, path)
        return False

    if previous is None:
        logger.info("Added %s setting to %s.", key, path)
    else:
        logger.info("Updated existing %s setting in %s.", key, path)

    if dry_run:
        logger.info("Would write %s", path)
        return True

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(rendered, encoding="utf-8", errors="surrogateescape")
    return True


class ConfigureLightDMStep:
    step_id = "60_configure_lightdm"
    severity = Severity.RECOVERABLE

    def run(self, ctx: InstallContext) -> None:
        logger.info("Configuring LightDM...")
        m = ctx.manifest

        configure_greeter_session(
            Path(ctx.system.lightdm_config),
            section=m.lightdm_section,
            key=m.lightdm_key,
            value=m.greeter_name,
            dry_run=ctx.dry_run,
        )
        logger.info("LightDM configured to use %s.", m.greeter_name)

        if not command_exists("systemctl"):
            logger.warning("systemctl not found. Cannot enable %s service automatically.", m.lightdm_service)
            return

        logger.info("Attempting to enable %s service...", m.lightdm_service)
        r = run_cmd(["systemctl", "enable", m.lightdm_service], check=False, dry_run=ctx.dry_run)
        if r.ok:
            logger.info("%s service enabled.", m.lightdm_service)
        else:
            logger.warning(
                "Failed to enable %s service (%s): %s. You might need to do this manually.",
                m.lightdm_service,
                r.returncode,
                r.stderr.strip(),
            )
