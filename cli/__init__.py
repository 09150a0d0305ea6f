"""
Content Store - Command Line Interface

Entry point for the ``contentstore`` operational commands.
"""
from cli.main import app, main

__all__ = ["app", "main"]
