from __future__ import annotations

import re
from typing import List, Optional, Pattern, Tuple


def _key_pattern(key: str) -> Pattern[str]:
    return re.compile(r"^(?P<indent>[ \t]*)(?P<comment>#[# \t]*)?" + re.escape(key) + r"[ \t]*:")


def _split(text: str) -> Tuple[List[str], bool]:
    if not text:
        return [], True
    trailing = text.endswith("\n")
    lines = text.split("\n")
    if trailing:
        lines.pop()
    return lines, trailing


def _join(lines: List[str], trailing: bool) -> str:
    if not lines:
        return ""
    return "\n".join(lines) + ("\n" if trailing else "")


def count_active(text: str, key: str) -> int:
    pat = _key_pattern(key)
    n = 0
    for line in _split(text)[0]:
        m = pat.match(line)
        if m and not m.group("comment"):
            n += 1
    return n


def set_top_level_key(text: str, key: str, value: str) -> str:
    """Set ``key: value`` in a YAML-style config without dropping comments.

    The first active ``key:`` line is rewritten in place (keeping its
    indentation); failing that, the first commented-out one is uncommented.
    Other active occurrences are removed. If the key is nowhere, it is
    appended at top level.
    """

    lines, trailing = _split(text)
    pat = _key_pattern(key)

    active: List[int] = []
    first_commented: Optional[int] = None
    for i, line in enumerate(lines):
        m = pat.match(line)
        if not m:
            continue
        if m.group("comment"):
            if first_commented is None:
                first_commented = i
        else:
            active.append(i)

    if active:
        target = active[0]
    elif first_commented is not None:
        target = first_commented
    else:
        lines.append(f"{key}: {value}")
        return _join(lines, True)

    indent = pat.match(lines[target]).group("indent")  # type: ignore[union-attr]
    lines[target] = f"{indent}{key}: {value}"
    for i in reversed(active[1:]):
        del lines[i]
    return _join(lines, trailing)
