# The MIT License (MIT)
# Copyright © 2025 Entrius

"""prtriage CLI package."""

from prtriage.cli.main import cli, main

__all__ = ['cli', 'main']
