"""Module entry point: python -m fog_explore ..."""

from __future__ import annotations

from fog_explore.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
