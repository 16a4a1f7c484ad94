"""i3 desktop installer (Python-first, step-driven).

Core design goals:
- Idempotent steps, safe to re-run
- Explicit step severity (fatal vs recoverable)
- Package-manager agnostic dependency installation
- Structured edits of system config files
- Centralized logging
"""

__all__ = []
