from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

import requests

from ..models.config_models import DirectoryConfig
from ..models.directory import Service, Team, User
from .progress import ProgressTracker

"""Directory gateway: teams, users and services from the incident directory.

``HttpDirectoryGateway`` talks to a PagerDuty-style REST API:

- ``Authorization: Token token=<token>``
- ``limit`` / ``offset`` pagination, drained until the response says ``more: false``
- services are listed with their owning teams (``include[]=teams``)

HTTP failures are mapped onto ``DirectoryError`` subclasses, each carrying its
own ``user_message`` so that callers never have to show a generic
"request failed".
"""

__all__ = [
    "DirectoryError",
    "DirectoryUnauthorized",
    "DirectoryForbidden",
    "DirectoryNotFound",
    "DirectoryNetworkError",
    "DirectoryGateway",
    "HttpDirectoryGateway",
]

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/vnd.pagerduty+json;version=2"


class DirectoryError(Exception):
    user_message = "The directory service request failed."


class DirectoryUnauthorized(DirectoryError):
    user_message = "Directory API token is missing or invalid. Check DIRECTORY_API_TOKEN."


class DirectoryForbidden(DirectoryError):
    user_message = "The directory API token is not allowed to access this resource."


class DirectoryNotFound(DirectoryError):
    user_message = "The requested directory entry does not exist."


class DirectoryNetworkError(DirectoryError):
    user_message = "Could not reach the directory service. Check the network and try again."


class DirectoryGateway(Protocol):
    def get_all_teams(self) -> list[Team]: ...

    def get_all_services(self) -> list[Service]: ...

    def get_all_users(self) -> list[User]: ...

    def get_service(self, service_id: str) -> Service: ...

    def update_service(self, service_id: str, patch: dict[str, Any]) -> Service: ...


_STATUS_ERRORS: dict[int, type[DirectoryError]] = {
    401: DirectoryUnauthorized,
    403: DirectoryForbidden,
    404: DirectoryNotFound,
}


class HttpDirectoryGateway:
    """requests-based gateway. The session is injectable for tests."""

    def __init__(self, config: DirectoryConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.session = session or requests.Session()
        headers = {
            "Accept": ACCEPT_HEADER,
            "Content-Type": "application/json",
        }
        if config.api_token:
            headers["Authorization"] = f"Token token={config.api_token}"
        self.session.headers.update(headers)

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.config.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.config.timeout_seconds, **kwargs)
        except requests.RequestException as e:
            raise DirectoryNetworkError(f"{method} {path} failed: {e}") from e

        status = response.status_code
        if status >= 400:
            error_cls = _STATUS_ERRORS.get(status, DirectoryNetworkError)
            raise error_cls(f"{method} {path} returned {status}")
        try:
            return response.json()
        except ValueError as e:
            raise DirectoryNetworkError(f"{method} {path} returned invalid JSON") from e

    def _get_all(
        self,
        path: str,
        collection: str,
        parse: Callable[[dict[str, Any]], Any],
        extra_params: list[tuple[str, str]] | None = None,
    ) -> list[Any]:
        items: list[Any] = []
        limit = self.config.page_size
        offset = 0
        with ProgressTracker(description=f"Fetching {collection}") as progress:
            while True:
                params = list(extra_params or [])
                params += [("limit", str(limit)), ("offset", str(offset))]
                body = self._request("GET", path, params=params)
                page = body.get(collection) or []
                items.extend(parse(entry) for entry in page)
                progress.advance()
                progress.set_postfix(items=len(items))
                if not body.get("more"):
                    break
                offset += limit
        logger.info("fetched %d %s from directory", len(items), collection)
        return items

    def get_all_teams(self) -> list[Team]:
        return self._get_all("/teams", "teams", Team.from_api)

    def get_all_users(self) -> list[User]:
        return self._get_all("/users", "users", User.from_api)

    def get_all_services(self) -> list[Service]:
        return self._get_all("/services", "services", Service.from_api, [("include[]", "teams")])

    def get_service(self, service_id: str) -> Service:
        body = self._request("GET", f"/services/{service_id}", params=[("include[]", "teams")])
        return Service.from_api(body.get("service") or {})

    def update_service(self, service_id: str, patch: dict[str, Any]) -> Service:
        body = self._request("PUT", f"/services/{service_id}", json={"service": patch})
        return Service.from_api(body.get("service") or {})
