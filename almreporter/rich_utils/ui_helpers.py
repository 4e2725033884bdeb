import os
import sys

from rich.console import Console

CI_VARIABLES = ("CI", "GITHUB_ACTIONS", "GITLAB_CI", "JENKINS_URL", "BUILD_NUMBER")


def is_ci_environment():
    return (
        any(os.getenv(var) is not None for var in CI_VARIABLES) or
        not sys.stdout.isatty()
    )


def get_console() -> Console:
    """Detect environment and create console."""
    if is_ci_environment():
        # Build logs - no colors, no interactive elements
        return Console(force_terminal=False, no_color=True)

    # Interactive terminal - full Rich capabilities
    return Console()
