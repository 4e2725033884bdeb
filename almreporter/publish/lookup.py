"""
Name-based lookups of automation suites and test run sets.

Pipelines may name a suite or run set instead of giving its id. The lists are
fetched at most once per project for one publish invocation; the cache
belongs to that invocation and is dropped when the project changes.
"""

import logging
from typing import Dict, Optional

from almreporter.client import RUN_SET_MENU_ID

logger = logging.getLogger(__name__)


class LookupCache:
    """Suite names and run set labels for one publish invocation"""

    def __init__(self):
        self._project_id: Optional[str] = None
        self._suites: Optional[Dict[int, str]] = None
        self._run_sets: Optional[Dict[int, str]] = None

    def _select_project(self, project_id: str) -> None:
        if project_id != self._project_id:
            if self._project_id is not None:
                logger.debug(f"Project changed from {self._project_id} to {project_id}, clearing lookups")
            self._project_id = project_id
            self._suites = None
            self._run_sets = None

    def suites(self, client, project_id: str) -> Dict[int, str]:
        self._select_project(project_id)
        if self._suites is None:
            self._suites = {s.id: s.name for s in client.get_automation_suites(project_id)}
        return self._suites

    def run_sets(self, client, project_id: str) -> Dict[int, str]:
        self._select_project(project_id)
        if self._run_sets is None:
            self._run_sets = {i.id: i.label for i in client.get_menu(project_id, RUN_SET_MENU_ID)}
        return self._run_sets

    def suite_id_for_name(self, client, project_id: str, name: str) -> Optional[int]:
        for suite_id, suite_name in self.suites(client, project_id).items():
            if suite_name == name:
                return suite_id
        return None

    def run_set_id_for_label(self, client, project_id: str, label: str) -> Optional[int]:
        for run_set_id, run_set_label in self.run_sets(client, project_id).items():
            if run_set_label == label:
                return run_set_id
        return None

    def run_set_label(self, client, project_id: str, run_set_id: int) -> Optional[str]:
        return self.run_sets(client, project_id).get(run_set_id)
