from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)

# Shell conventions for "command not found" and "found but cannot execute".
NOT_FOUND_RC = 127
NOT_EXECUTABLE_RC = 126


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    cwd: str | None = None,
    quiet: bool = False,
    dry_run: bool = False,
) -> CmdResult:
    """Run a blocking command with consistent logging.

    - Always logs the command (at DEBUG when ``quiet``).
    - Captures stdout/stderr; both are logged at DEBUG.
    - A missing executable is reported as returncode 127, any other OSError
      while starting it (permissions, bad interpreter) as 126.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.log(logging.DEBUG if quiet else logging.INFO, "CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    try:
        p = subprocess.run(
            argv_list,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        result = CmdResult(argv=argv_list, returncode=NOT_FOUND_RC, stdout="", stderr=str(e))
    except OSError as e:
        result = CmdResult(argv=argv_list, returncode=NOT_EXECUTABLE_RC, stdout="", stderr=str(e))
    else:
        result = CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout or "", stderr=p.stderr or "")

    if result.stdout:
        logger.debug("STDOUT %s", result.stdout.strip())
    if result.stderr:
        logger.debug("STDERR %s", result.stderr.strip())

    if check and result.returncode != 0:
        raise CommandError(argv_list, result.returncode, result.stderr.strip())

    return result
