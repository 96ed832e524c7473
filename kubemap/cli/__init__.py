"""kubemap command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kubemap`` script).
"""

from kubemap.cli.main import cli

__all__ = ["cli"]
