"""
ALM REST API Client

Handles all API interactions with the ALM REST API server: version and
project discovery, project token retrieval, automation suite and menu
lookups, and automation build submission.
"""

import json
import logging
import os
import socket
from contextlib import ExitStack
from typing import List, Optional, Sequence
from urllib.parse import urljoin, urlparse

import backoff
import requests

from .auth import AuthInfoToken
from .error_handler import handle_api_errors
from .exceptions import (
    ALMClientError,
    APIConnectionError,
    APIServerError,
    APITimeoutError,
    InvalidAPIAddressError,
)
from .models import (
    AutomationSuite,
    BuildMetadata,
    CertificateInfo,
    MenuItem,
    Project,
    ReportContext,
    SubmitBuildResponse,
    SuiteContext,
    VersionInfo,
)
from .tls import DEFAULT_PROBE_TIMEOUT, PinnedCertificateAdapter, get_server_cert_status, is_https, split_address

API_ROOT = "helix-alm/api/v0/"
DEFAULT_TIMEOUT = 60

# Menu that lists test run sets
RUN_SET_MENU_ID = "2147483637"


def normalize_api_address(api_address: str) -> str:
    """Validate a REST API address and return it with a trailing slash."""
    address = (api_address or "").strip()
    parsed = urlparse(address)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidAPIAddressError(f"Invalid REST API address: {api_address}", endpoint=api_address)
    if not address.endswith("/"):
        address += "/"
    return address


def _should_give_up(error: ALMClientError) -> bool:
    # Client-side HTTP errors won't improve on retry
    return error.status_code is not None and error.status_code < 500


class ALMAPIClient:
    """Handles all API interactions with the ALM REST API server"""

    def __init__(self, api_address: str, auth_info, pem_certificates: Sequence[str] = (),
                 timeout: float = DEFAULT_TIMEOUT):
        self.api_address = normalize_api_address(api_address)
        self.base_url = urljoin(self.api_address, API_ROOT)
        self.auth_info = auth_info
        self.pem_certificates = list(pem_certificates)
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)
        self.stats = {"api_calls": 0, "errors": 0}

        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if is_https(self.api_address):
            self.session.mount("https://", PinnedCertificateAdapter(self.pem_certificates))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.session.close()

    def _url(self, endpoint: str) -> str:
        return urljoin(self.base_url, endpoint)

    def _get_json(self, endpoint: str, authorization: Optional[str] = None):
        headers = {"Authorization": authorization} if authorization else {}
        self.stats["api_calls"] += 1
        response = self.session.get(self._url(endpoint), headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def get_server_cert_status(self) -> CertificateInfo:
        """Classify the server certificate against system roots plus accepted certificates."""
        return get_server_cert_status(self.api_address, self.pem_certificates,
                                      timeout=min(self.timeout, DEFAULT_PROBE_TIMEOUT))

    def does_server_exist(self) -> None:
        """Open a plain TCP connection to the REST API host. Raises APIConnectionError if unreachable."""
        host, port = split_address(self.api_address)
        try:
            with socket.create_connection((host, port), timeout=self.timeout):
                pass
        except OSError as e:
            raise APIConnectionError(f"Cannot connect to the REST API server at {self.api_address}",
                                     endpoint=self.api_address, original_exception=e)

    @backoff.on_exception(backoff.expo, (APIConnectionError, APITimeoutError, APIServerError),
                          max_tries=3, base=1, max_value=60, giveup=_should_give_up)
    @handle_api_errors(operation="get versions")
    def get_versions(self) -> VersionInfo:
        """GET /versions"""
        data = self._get_json("versions")
        return VersionInfo(
            rest_api_server=data["restAPIServer"],
            alm_server=data["helixALMServer"],
        )

    @backoff.on_exception(backoff.expo, (APIConnectionError, APITimeoutError, APIServerError),
                          max_tries=3, base=1, max_value=60, giveup=_should_give_up)
    @handle_api_errors(operation="get projects")
    def get_projects(self) -> List[Project]:
        """GET /projects"""
        data = self._get_json("projects", self.auth_info.get_authorization_header())
        return [Project(uuid=p["uuid"], name=p["name"]) for p in data.get("projects", [])]

    @handle_api_errors(operation="get auth token")
    def get_auth_token(self, project_id: str) -> AuthInfoToken:
        """GET /{projectID}/token"""
        data = self._get_json(f"{project_id}/token", self.auth_info.get_authorization_header())
        return AuthInfoToken(token=data["accessToken"])

    @backoff.on_exception(backoff.expo, (APIConnectionError, APITimeoutError, APIServerError),
                          max_tries=3, base=1, max_value=60, giveup=_should_give_up)
    @handle_api_errors(operation="get automation suites")
    def get_automation_suites(self, project_id: str) -> List[AutomationSuite]:
        """GET /{projectID}/automationSuites"""
        token = self.get_auth_token(project_id)
        data = self._get_json(f"{project_id}/automationSuites", token.get_authorization_header())
        return [AutomationSuite(id=int(s["id"]), name=s["name"]) for s in data.get("automationSuites", [])]

    @backoff.on_exception(backoff.expo, (APIConnectionError, APITimeoutError, APIServerError),
                          max_tries=3, base=1, max_value=60, giveup=_should_give_up)
    @handle_api_errors(operation="get menu")
    def get_menu(self, project_id: str, menu_id: str = RUN_SET_MENU_ID) -> List[MenuItem]:
        """GET /{projectID}/menus/{menuID}"""
        token = self.get_auth_token(project_id)
        data = self._get_json(f"{project_id}/menus/{menu_id}", token.get_authorization_header())
        return [MenuItem(id=int(i["id"]), label=i["label"]) for i in data.get("items", [])]

    @handle_api_errors(operation="submit build")
    def submit_build(self, build_number: str, report_context: ReportContext,
                     suite_context: SuiteContext, metadata: BuildMetadata,
                     authorization: Optional[str] = None) -> SubmitBuildResponse:
        """POST /{projectID}/automationSuites/{suiteID}/builds

        Makes exactly one request. HTTP error statuses come back as an error
        response; transport failures raise.
        """
        if authorization is None:
            authorization = self.get_auth_token(suite_context.project_id).get_authorization_header()

        endpoint = f"{suite_context.project_id}/automationSuites/{suite_context.suite_id}/builds"
        payload = {
            "buildNumber": build_number,
            "reportFormat": report_context.report_format.value if report_context.report_format else None,
            **metadata.to_dict(),
        }

        with ExitStack() as stack:
            files = [("metadata", (None, json.dumps(payload), "application/json"))]
            for path in report_context.report_files:
                handle = stack.enter_context(open(path, "rb"))
                files.append(("reportFiles", (os.path.basename(path), handle, "application/octet-stream")))

            self.stats["api_calls"] += 1
            response = self.session.post(
                self._url(endpoint),
                files=files,
                headers={"Authorization": authorization},
                timeout=self.timeout,
            )

        return self._build_submit_response(response)

    def _build_submit_response(self, response: requests.Response) -> SubmitBuildResponse:
        if response.status_code < 400:
            try:
                data = response.json()
            except ValueError:
                data = {}
            return SubmitBuildResponse(build_id=data.get("buildID"), status_code=response.status_code)

        error_msg = f"HTTP {response.status_code}: {response.text[:200]}"
        try:
            error_data = response.json()
            if isinstance(error_data, dict):
                error_msg = error_data.get("message") or error_data.get("error") or error_msg
        except ValueError:
            pass

        self.logger.warning(f"Build submission rejected with status {response.status_code}: {error_msg}")
        return SubmitBuildResponse(error=error_msg, status_code=response.status_code)
