"""nodewatch command-line interface.

Exposes:
    cli -- Click command entry point (registered as ``nodewatch`` script).
"""

from nodewatch.cli.main import cli

__all__ = ["cli"]
