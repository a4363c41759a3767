import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote, urlsplit

import requests

from buildrelay.core.enums import BuildResult
from ..domain.interfaces import (
    IBuildInfoService, ICredentialProvider, IJobCatalog, IJobControlService, IJobQueueService
)
from ..domain.models import (
    AcceptanceResponse, BuildHandle, BuildLog, BuildStatus, JobSummary, QueueItem
)

logger = logging.getLogger(__name__)


class JenkinsAPIError(RuntimeError):
    """Transport failure, unexpected HTTP status, or an undecodable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BasicAuthCredentials(ICredentialProvider):
    """Jenkins user + API token, sent as HTTP Basic auth."""

    def __init__(self, username: str, api_token: str):
        if not username or not api_token:
            raise ValueError("Both username and API token are required.")
        self._username = username
        self._api_token = api_token

    def authorization_header(self) -> Optional[str]:
        raw = f"{self._username}:{self._api_token}".encode("utf-8")
        return f"Basic {base64.b64encode(raw).decode('ascii')}"

    def __repr__(self):
        return f"BasicAuthCredentials(username={self._username!r}, api_token='***')"


class AnonymousCredentials(ICredentialProvider):
    """For Jenkins instances (or proxies) that need no Authorization header."""

    def authorization_header(self) -> Optional[str]:
        return None


class JenkinsClient(IJobQueueService, IJobControlService, IBuildInfoService, IJobCatalog):
    """
    Adapter over the Jenkins JSON API.
    One instance serves every remote contract the dispatcher needs.
    """

    def __init__(self,
                 base_url: str,
                 credentials: ICredentialProvider,
                 timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings) -> "JenkinsClient":
        if settings.JENKINS_USER and settings.JENKINS_API_TOKEN:
            credentials = BasicAuthCredentials(settings.JENKINS_USER, settings.JENKINS_API_TOKEN)
        else:
            logger.warning("JENKINS_USER/JENKINS_API_TOKEN not set. Calling Jenkins anonymously.")
            credentials = AnonymousCredentials()
        return cls(settings.JENKINS_URL, credentials, timeout=settings.JENKINS_HTTP_TIMEOUT_SECONDS)

    @staticmethod
    def job_path(job_name: str) -> str:
        """'folder/app' -> 'job/folder/job/app'"""
        parts = [p for p in job_name.split("/") if p]
        return "/".join(f"job/{quote(p, safe='')}" for p in parts)

    @staticmethod
    def job_name_from_url(url: str) -> str:
        """'http://ci/jenkins/job/infra/job/deploy/' -> 'infra/deploy'"""
        segments = [s for s in urlsplit(url).path.split("/") if s]
        names, i = [], 0
        while i < len(segments) - 1:
            if segments[i] == "job":
                names.append(unquote(segments[i + 1]))
                i += 2
            else:
                i += 1
        return "/".join(names)

    # --- Catalog ---

    def list_jobs(self) -> List[JobSummary]:
        data = self._get_json("api/json")
        try:
            return [
                JobSummary(name=j["name"], color=j.get("color") or "", url=j.get("url") or "")
                for j in data.get("jobs", [])
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise JenkinsAPIError(f"Unexpected job list payload: {e}") from e

    # --- Queue ---

    def list_queued_items(self) -> List[QueueItem]:
        data = self._get_json("queue/api/json")
        items = []
        try:
            for raw in data.get("items", []):
                task = raw.get("task") or {}
                executable = raw.get("executable") or {}
                items.append(QueueItem(
                    task_name=task.get("name", ""),
                    params=raw.get("params") or "",
                    build_number=executable.get("number"),
                    task_path=self.job_name_from_url(task.get("url") or "")
                ))
        except (TypeError, AttributeError) as e:
            raise JenkinsAPIError(f"Unexpected queue payload: {e}") from e
        return items

    def get_last_build(self, job_name: str) -> Optional[int]:
        # 404 here simply means the job has never been built
        data = self._get_json(f"{self.job_path(job_name)}/lastBuild/api/json", allow_missing=True)
        if not data:
            return None
        number = data.get("number")
        return int(number) if number is not None else None

    # --- Control ---

    def start_with_parameters(self, job_name: str, parameters: Dict[str, str]) -> AcceptanceResponse:
        path = f"{self.job_path(job_name)}/buildWithParameters"
        # Redirects are not followed: a 302 is itself the acceptance signal
        response = self._request("POST", path, data=parameters, allow_redirects=False)
        logger.info(f"POST {path} -> {response.status_code}")

        detail = "" if response.ok else response.text[:500]
        return AcceptanceResponse(status_code=response.status_code, detail=detail)

    # --- Build info ---

    def get_status(self, job_name: str, build_number: int) -> BuildStatus:
        data = self._get_json(f"{self.job_path(job_name)}/{build_number}/api/json")
        try:
            return BuildStatus(
                number=int(data["number"]),
                running=bool(data.get("building", False)),
                result=BuildResult.parse(data.get("result")),
                duration_ms=int(data.get("duration") or 0)
            )
        except (KeyError, TypeError, ValueError) as e:
            raise JenkinsAPIError(f"Unexpected build payload for {job_name}#{build_number}: {e}") from e

    def get_log(self, job_name: str, build_number: int) -> BuildLog:
        path = f"{self.job_path(job_name)}/{build_number}/consoleText"
        response = self._request("GET", path)
        self._raise_for_status(response, path)
        return BuildLog(handle=BuildHandle(job_name=job_name, number=build_number), text=response.text)

    # --- Plumbing ---

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        auth = self.credentials.authorization_header()
        if auth:
            headers["Authorization"] = auth
        return headers

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{path}"
        try:
            return self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise JenkinsAPIError(f"{method} {path} failed: {e}") from e

    def _get_json(self, path: str, allow_missing: bool = False) -> Any:
        response = self._request("GET", path)
        if allow_missing and response.status_code == 404:
            return None
        self._raise_for_status(response, path)
        try:
            return response.json()
        except ValueError as e:
            raise JenkinsAPIError(f"Invalid JSON from {path}: {e}", status_code=response.status_code) from e

    @staticmethod
    def _raise_for_status(response: requests.Response, path: str):
        if response.status_code >= 400:
            snippet = response.text[:200]
            raise JenkinsAPIError(f"Jenkins {response.status_code} on {path}: {snippet}", status_code=response.status_code)
