"""
Command line interface.

This module provides:
- The typer application with one command per lifecycle verb
- Rich renderings of list, show, validate and test results
"""

from tracker_deployer.cli.main import OutputFormat, app, main

__all__ = ["OutputFormat", "app", "main"]
