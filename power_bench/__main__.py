"""Allow ``python -m power_bench``."""

from __future__ import annotations

from .app.master import cli

if __name__ == "__main__":
    cli()
