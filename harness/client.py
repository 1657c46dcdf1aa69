"""
Minimal Kubernetes REST client.

Speaks plain JSON over HTTP, normally to a local `kubectl proxy` which takes
care of authentication. Only the verbs the scenarios need are provided.
"""

import copy
import json
import logging
from typing import Any, Protocol

import requests

from harness.errors import (
    AlreadyExistsError,
    ApiError,
    ConflictError,
    NotFoundError,
    TransportError,
)
from harness.resources import ResourceKind, Snapshot


class ResourceStore(Protocol):
    """The slice of a declarative control plane the harness drives."""

    def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> Snapshot: ...

    def list(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[Snapshot]: ...

    def create(self, kind: ResourceKind, obj: dict[str, Any], namespace: str | None = None) -> Snapshot: ...

    def update(
        self,
        kind: ResourceKind,
        name: str,
        obj: dict[str, Any],
        expected_version: str,
        namespace: str | None = None,
    ) -> Snapshot: ...

    def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None: ...


class KubeClient:
    """
    REST client for the Kubernetes API.

    Usage:
        client = KubeClient("http://127.0.0.1:8001")
        pool = client.get(POOL, "worker")
        client.update(POOL, "worker", pool.obj, pool.version)
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        session: requests.Session | None = None,
        name: str | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.name = name or base_url
        self.logger = logging.getLogger(f"kube.{self.name}")

    def _request(
        self,
        method: str,
        path: str,
        kind: ResourceKind,
        name: str = "",
        body: dict | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]:
        """
        Issue a request and translate failures into harness errors.

        Raises:
            NotFoundError: On 404
            ConflictError: On 409 for an update
            AlreadyExistsError: On 409 for a create
            TransportError: If the server is unreachable or answers 5xx
            ApiError: On any other non-2xx status
        """
        url = f"{self.base_url}{path}"
        self.logger.debug(f"{method} {path}")

        try:
            resp = self.session.request(method, url, json=body, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.warning(f"request failed: {method} {path}: {e}")
            raise TransportError(f"{method} {path}: {e}") from e

        if resp.ok:
            try:
                return resp.json()
            except json.JSONDecodeError as e:
                raise ApiError(resp.status_code, "InvalidJSON", f"{e}: {resp.text[:200]}") from e

        status = _parse_status(resp)
        reason = status.get("reason", "")
        message = status.get("message", resp.text)

        if resp.status_code == 404:
            raise NotFoundError(kind.name, name, message)
        if resp.status_code == 409:
            if reason == "AlreadyExists" or method == "POST":
                raise AlreadyExistsError(kind.name, name, message)
            raise ConflictError(kind.name, name, message)
        if resp.status_code >= 500:
            self.logger.warning(f"server error {resp.status_code} on {method} {path}: {message}")
            raise TransportError(f"{method} {path}: {resp.status_code} {message}")
        raise ApiError(resp.status_code, reason or resp.reason, message)

    def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> Snapshot:
        return Snapshot.of(self._request("GET", kind.path(name, namespace), kind, name))

    def list(
        self,
        kind: ResourceKind,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[Snapshot]:
        params = {"labelSelector": label_selector} if label_selector else None
        result = self._request("GET", kind.collection_path(namespace), kind, params=params)
        return [Snapshot.of(item) for item in result.get("items") or []]

    def create(self, kind: ResourceKind, obj: dict[str, Any], namespace: str | None = None) -> Snapshot:
        name = obj.get("metadata", {}).get("name", "")
        result = self._request("POST", kind.collection_path(namespace), kind, name, body=obj)
        self.logger.info(f"Created {kind} '{name}'")
        return Snapshot.of(result)

    def update(
        self,
        kind: ResourceKind,
        name: str,
        obj: dict[str, Any],
        expected_version: str,
        namespace: str | None = None,
    ) -> Snapshot:
        """Replace the object. The API server rejects the write if `expected_version` is stale."""
        body = copy.deepcopy(obj)
        body.setdefault("metadata", {})["resourceVersion"] = expected_version
        return Snapshot.of(self._request("PUT", kind.path(name, namespace), kind, name, body=body))

    def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        self._request("DELETE", kind.path(name, namespace), kind, name)
        self.logger.info(f"Deleted {kind} '{name}'")

    def server_version(self) -> dict[str, Any]:
        try:
            resp = self.session.get(f"{self.base_url}/version", timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise TransportError(f"GET /version: {e}") from e
        return resp.json()


def _parse_status(resp: requests.Response) -> dict[str, Any]:
    """Decode a metav1.Status error body, if there is one."""
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
