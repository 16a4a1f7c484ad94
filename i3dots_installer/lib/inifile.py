from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

_SECTION_RE = re.compile(r"^\s*\[(?P<name>[^\]]+)\]\s*$")
_ACTIVE_RE = re.compile(r"^\s*(?P<key>[^\s#;\[=][^=]*?)\s*=(?P<value>.*)$")
_COMMENTED_RE = re.compile(r"^\s*[#;][#;\s]*(?P<key>[^\s#;\[=][^=]*?)\s*=")


def _active_key(line: str) -> Optional[str]:
    m = _ACTIVE_RE.match(line)
    return m.group("key") if m else None


def _commented_key(line: str) -> Optional[str]:
    m = _COMMENTED_RE.match(line)
    return m.group("key") if m else None


@dataclass
class IniDocument:
    """Line-preserving editor for ``[section]`` + ``key=value`` files.

    Only the lines touched by ``set`` or ``ensure_section`` change; comments,
    blank lines and unknown syntax are rendered back verbatim.
    """

    lines: List[str] = field(default_factory=list)
    trailing_newline: bool = True

    @classmethod
    def parse(cls, text: str) -> "IniDocument":
        if not text:
            return cls()
        trailing = text.endswith("\n")
        lines = text.split("\n")
        if trailing:
            lines.pop()
        return cls(lines=lines, trailing_newline=trailing)

    def render(self) -> str:
        if not self.lines:
            return ""
        out = "\n".join(self.lines)
        if self.trailing_newline:
            out += "\n"
        return out

    def _section_span(self, section: str) -> Optional[Tuple[int, int]]:
        start: Optional[int] = None
        for i, line in enumerate(self.lines):
            m = _SECTION_RE.match(line)
            if not m:
                continue
            if start is not None:
                return start, i
            if m.group("name") == section:
                start = i
        if start is None:
            return None
        return start, len(self.lines)

    def has_section(self, section: str) -> bool:
        return self._section_span(section) is not None

    def ensure_section(self, section: str) -> bool:
        """Append ``[section]`` if missing. Returns True when it was added."""

        if self.has_section(section):
            return False
        if self.lines and self.lines[-1].strip():
            self.lines.append("")
        self.lines.append(f"[{section}]")
        self.trailing_newline = True
        return True

    def get(self, section: str, key: str) -> Optional[str]:
        span = self._section_span(section)
        if span is None:
            return None
        start, end = span
        for line in self.lines[start + 1 : end]:
            m = _ACTIVE_RE.match(line)
            if m and m.group("key") == key:
                return m.group("value").strip()
        return None

    def count(self, section: str, key: str) -> int:
        """Number of active ``key=`` lines inside ``section``."""

        span = self._section_span(section)
        if span is None:
            return 0
        start, end = span
        return sum(1 for line in self.lines[start + 1 : end] if _active_key(line) == key)

    def set(self, section: str, key: str, value: str) -> None:
        """Set ``key=value`` inside ``section``.

        Replaces the first active key, else the first commented-out key,
        else inserts directly below the section header. Duplicate active keys
        in the section are dropped.
        """

        self.ensure_section(section)
        span = self._section_span(section)
        assert span is not None
        start, end = span
        new_line = f"{key}={value}"

        active = [i for i in range(start + 1, end) if _active_key(self.lines[i]) == key]
        if active:
            self.lines[active[0]] = new_line
            for i in reversed(active[1:]):
                del self.lines[i]
            return

        for i in range(start + 1, end):
            if _commented_key(self.lines[i]) == key:
                self.lines[i] = new_line
                return

        self.lines.insert(start + 1, new_line)
