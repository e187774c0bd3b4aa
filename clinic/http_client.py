"""Remote MediFlow API client.

Speaks to a running MediFlow server over HTTP with the same surface as
:class:`clinic.mock_client.MockApiClient`, so the management commands (and
anything else written against the mock client) can be pointed at a real
deployment.  Sessions retry transient failures; transport and server errors
are raised as :class:`ApiClientError`.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import requests
from django.conf import settings
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .mock_client import ENTITY_NAMES, InvalidCredentials, UnknownEntity, get_mock_client
from .resources import SLUG_BY_ENTITY

__all__ = ["ApiClientError", "ApiAuthError", "RemoteEntityManager", "HttpApiClient", "get_api_client"]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.5
PAGE_SIZE = 100


class ApiClientError(RuntimeError):
    """Base exception for remote API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiAuthError(ApiClientError, InvalidCredentials):
    """Raised on 401/403 answers or a failed login."""


def _payload(response: Response) -> Any:
    try:
        body = response.json()
    except ValueError as exc:
        raise ApiClientError("Invalid JSON in API response", response.status_code) from exc
    if isinstance(body, dict) and "success" in body:
        return body
    return {"success": True, "data": body}


class RemoteEntityManager:
    """Entity manager backed by the generic CRUD routes of one resource."""

    def __init__(self, client: "HttpApiClient", entity: str, slug: str) -> None:
        self.client = client
        self.name = entity
        self.slug = slug

    def _pages(self, params: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        page = 1
        while True:
            query = dict(params or {}, page=page, limit=PAGE_SIZE)
            body = _payload(self.client._request("GET", self.slug, params=query))
            yield from body.get("data") or []
            pages = (body.get("pagination") or {}).get("pages") or 1
            if page >= pages:
                return
            page += 1

    def list(self) -> List[Dict[str, Any]]:
        return list(self._pages())

    def filter(self, **fields: Any) -> List[Dict[str, Any]]:
        return list(self._pages({k: v for k, v in fields.items() if v is not None}))

    def count(self) -> int:
        body = _payload(self.client._request("GET", self.slug, params={"page": 1, "limit": 1}))
        return int((body.get("pagination") or {}).get("total") or 0)

    def get(self, record_id) -> Optional[Dict[str, Any]]:
        response = self.client._request("GET", f"{self.slug}/{record_id}", expected_status=(200, 404))
        if response.status_code == 404:
            return None
        return _payload(response).get("data")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client._request("POST", self.slug, json_payload=data, expected_status=(200, 201))
        return _payload(response).get("data")

    def update(self, record_id, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        response = self.client._request(
            "PATCH", f"{self.slug}/{record_id}", json_payload=patch, expected_status=(200, 404)
        )
        if response.status_code == 404:
            return None
        return _payload(response).get("data")

    def delete(self, record_id) -> bool:
        response = self.client._request(
            "DELETE", f"{self.slug}/{record_id}", expected_status=(200, 204, 404)
        )
        return response.status_code != 404


class HttpApiClient:
    """MediFlow API client over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be provided")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token = token
        self._token_lock = threading.Lock()
        self._session = self._build_session(max_retries=max_retries, backoff_factor=backoff_factor)
        self.entities: Dict[str, RemoteEntityManager] = {
            name: RemoteEntityManager(self, name, SLUG_BY_ENTITY[name]) for name in ENTITY_NAMES
        }

    def _build_session(self, *, max_retries: int, backoff_factor: float) -> requests.Session:
        session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            read=max_retries,
            connect=max_retries,
            status=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET", "PUT", "PATCH", "DELETE", "OPTIONS"),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def manager(self, entity: str) -> RemoteEntityManager:
        try:
            return self.entities[entity]
        except KeyError:
            raise UnknownEntity(f"Unknown entity: {entity}") from None

    def __getattr__(self, name: str) -> RemoteEntityManager:
        entities = self.__dict__.get("entities") or {}
        if name in entities:
            return entities[name]
        raise AttributeError(name)

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_payload: Optional[Dict[str, Any]] = None,
        expected_status: Union[int, Tuple[int, ...]] = (200,),
        authenticated: bool = True,
    ) -> Response:
        if isinstance(expected_status, int):
            expected_status = (expected_status,)
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Accept": "application/json"}
        if authenticated and self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self._session.request(
                method=method.upper(),
                url=url,
                params=params,
                json=json_payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Request to MediFlow API failed: %s %s: %s", method, url, exc)
            raise ApiClientError(f"Failed to execute {method} {path}") from exc

        if response.status_code not in expected_status:
            self._log_error_response(response)
            message = self._error_message(response)
            if response.status_code in (401, 403):
                raise ApiAuthError(message, response.status_code)
            raise ApiClientError(message, response.status_code)
        return response

    @staticmethod
    def _error_message(response: Response) -> str:
        try:
            error = (response.json() or {}).get("error") or {}
        except (ValueError, AttributeError):
            error = {}
        return error.get("message") or f"MediFlow API responded with status {response.status_code}"

    @staticmethod
    def _log_error_response(response: Response) -> None:
        content_type = response.headers.get("Content-Type", "")
        if "json" in content_type:
            try:
                parsed = response.json()
                logger.error("MediFlow API error response: status=%s body=%s", response.status_code, parsed)
                return
            except ValueError:
                pass
        logger.error(
            "MediFlow API error response: status=%s body=%s", response.status_code, response.text[:2048]
        )

    # ------------------------------------------------------------------
    # health / auth
    # ------------------------------------------------------------------
    def health_check(self) -> Dict[str, Any]:
        return _payload(self._request("GET", "health", authenticated=False)).get("data")

    def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        response = self._request(
            "POST", "auth/login",
            json_payload={"username": username, "password": password},
            authenticated=False,
        )
        data = _payload(response).get("data") or {}
        if not data.get("token"):
            raise ApiAuthError("Login response did not include a token", response.status_code)
        with self._token_lock:
            self.token = data["token"]
        logger.info("Logged in to %s as %s", self.base_url, username)
        return data

    def logout(self, token: Optional[str] = None) -> Dict[str, Any]:
        if not (token or self.token):
            return {"success": True}
        if token and token != self.token:
            raise ApiClientError("Remote logout only revokes this client's own token")
        self._request("POST", "auth/logout", json_payload={})
        with self._token_lock:
            self.token = None
        return {"success": True}


def get_api_client():
    """The mock client, or a logged-in remote client when ``CLINIC_API_MODE`` is ``http``."""
    mode = (getattr(settings, "CLINIC_API_MODE", "mock") or "mock").lower()
    if mode == "mock":
        return get_mock_client()
    if mode != "http":
        raise ValueError(f"Unknown CLINIC_API_MODE: {mode}")

    client = HttpApiClient(
        settings.CLINIC_API_BASE_URL,
        timeout=int(getattr(settings, "CLINIC_API_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)),
    )
    username = getattr(settings, "CLINIC_API_USERNAME", "")
    if username:
        client.authenticate(username, getattr(settings, "CLINIC_API_PASSWORD", ""))
    return client
