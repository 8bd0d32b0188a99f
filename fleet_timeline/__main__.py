"""Module entry point: python -m fleet_timeline ..."""

from __future__ import annotations

from fleet_timeline.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
