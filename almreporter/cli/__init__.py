"""
CLI module for ALM Test Reporter.

Provides the command-line interface over the publishing services.
"""
from almreporter.cli.app import app as _app

# Export app function for pyproject.toml entry point
def app():
    """Entry point function for pyproject.toml scripts."""
    _app()

__all__ = ['app']
