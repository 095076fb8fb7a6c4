"""Entry point for `python -m nodewatch`.

Usage:
    python -m nodewatch
    python -m nodewatch --kubeconfig ~/.kube/config -v
"""

from __future__ import annotations

from nodewatch.cli import cli

cli()
