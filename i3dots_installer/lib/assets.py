from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


def copy_file(src: str, dst_dir: str, *, dry_run: bool = False) -> Path:
    s = Path(src)
    d = Path(dst_dir)
    if not s.is_file():
        raise FileNotFoundError(src)

    out = d / s.name
    if dry_run:
        logger.info("Would copy %s -> %s", str(s), str(out))
        return out

    d.mkdir(parents=True, exist_ok=True)
    shutil.copy2(s, out)
    return out


def copy_tree(src: str, dst: str, *, patterns: Iterable[str] | None = None, dry_run: bool = False) -> List[Path]:
    """Copy a tree into ``dst``, overwriting existing files.

    With ``patterns`` only files whose name matches one of the glob patterns
    are copied (relative layout is preserved).
    """

    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(src)

    pats = list(patterns or [])
    copied: List[Path] = []

    if dry_run:
        logger.info("Would copy tree %s -> %s", str(s), str(d))
        return copied

    d.mkdir(parents=True, exist_ok=True)
    for item in sorted(s.rglob("*")):
        rel = item.relative_to(s)
        out = d / rel
        if item.is_dir():
            if not pats:
                out.mkdir(parents=True, exist_ok=True)
            continue
        if pats and not any(item.match(p) for p in pats):
            continue
        out.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(item, out)
        copied.append(out)
    return copied


def remove_tree(path: str, *, dry_run: bool = False) -> bool:
    """Remove a file or directory tree. Returns False when nothing was there."""

    p = Path(path)
    if not p.exists() and not p.is_symlink():
        return False
    if dry_run:
        logger.info("Would remove %s", str(p))
        return True
    if p.is_dir() and not p.is_symlink():
        shutil.rmtree(p)
    else:
        p.unlink()
    return True


def chown_tree(path: str, uid: int, gid: int, *, recursive: bool = True, dry_run: bool = False) -> None:
    p = Path(path)
    if not p.exists():
        return
    if dry_run:
        logger.info("Would chown %s%s:%s %s", "-R " if recursive else "", uid, gid, str(p))
        return

    os.chown(p, uid, gid, follow_symlinks=False)
    if recursive and p.is_dir():
        for item in p.rglob("*"):
            os.chown(item, uid, gid, follow_symlinks=False)


def make_user_dirs(path: str, uid: int, gid: int, *, dry_run: bool = False) -> List[Path]:
    """mkdir -p that hands every directory it creates to uid:gid.

    Directories that already existed keep their owner.
    """

    missing: List[Path] = []
    cur = Path(path)
    while not cur.exists():
        missing.append(cur)
        cur = cur.parent
    missing.reverse()

    if dry_run:
        for d in missing:
            logger.info("Would create %s", str(d))
        return missing

    for d in missing:
        d.mkdir(exist_ok=True)
        os.chown(d, uid, gid, follow_symlinks=False)
    return missing


def mark_executable(root: str, pattern: str = "*.sh", *, dry_run: bool = False) -> List[Path]:
    """chmod +x every file under root matching pattern."""

    r = Path(root)
    if not r.is_dir():
        return []

    changed: List[Path] = []
    for item in sorted(r.rglob(pattern)):
        if not item.is_file():
            continue
        if dry_run:
            logger.info("Would chmod +x %s", str(item))
            continue
        mode = item.stat().st_mode
        item.chmod(mode | 0o111)
        changed.append(item)
    return changed
