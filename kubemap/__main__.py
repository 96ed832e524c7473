"""Entry point for `python -m kubemap`.

Usage:
    python -m kubemap map
    python -m kubemap resolve deployment
"""

from __future__ import annotations

from kubemap.cli import cli

cli(prog_name="kubemap")
