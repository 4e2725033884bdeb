"""
Report file discovery in the build workspace.
"""

import glob
import os
from typing import List

from almreporter.publish.context import BuildContext
from almreporter.publish.exceptions import ArtifactError, NO_REPORT_FILES_MESSAGE


def split_patterns(pattern: str) -> List[str]:
    return [p.strip() for p in (pattern or "").split(",") if p.strip()]


def find_report_files(workspace: str, pattern: str) -> List[str]:
    """Files under ``workspace`` matching any of the comma-separated glob patterns.

    ``**`` matches across directories. Absolute patterns are used as-is.
    Results are de-duplicated and sorted.
    """
    matches = set()
    for single_pattern in split_patterns(pattern):
        for path in glob.glob(os.path.join(workspace, single_pattern), recursive=True):
            if os.path.isfile(path):
                matches.add(os.path.abspath(path))
    return sorted(matches)


def enumerate_report_files(context: BuildContext, pattern: str) -> List[str]:
    """Resolve the report file pattern for a build.

    Raises ArtifactError when nothing matches. A file that disappears later
    is reported by the executor as an artifact failure.
    """
    expanded = context.expand(pattern)
    files = find_report_files(context.workspace, expanded)
    if not files:
        raise ArtifactError(NO_REPORT_FILES_MESSAGE)

    for path in files:
        context.println(f"Found result file at {path}")
    return files
