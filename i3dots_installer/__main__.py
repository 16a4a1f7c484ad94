from __future__ import annotations

from i3dots_installer.main import main

if __name__ == "__main__":
    raise SystemExit(main())
