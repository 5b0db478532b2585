"""Persistence collaborator.

`WorkflowTransport` is the narrow interface the engine consumes.
`HttpWorkflowTransport` implements it over the workflow REST API with
`requests`, translating failures into typed `TransportError` kinds so callers
never have to inspect error text.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import requests
from pydantic import BaseModel, Field, ValidationError

from workflow_session.errors import TransportError, TransportErrorKind

logger = logging.getLogger(__name__)

# Statuses meaning "the server understood the request and declined it".
REJECTED_STATUS_CODES = frozenset({400, 409, 422})


class WorkflowSummary(BaseModel):
    id: str
    name: str
    description: str = Field(default="")


class WorkflowDocument(WorkflowSummary):
    """A workflow together with its serialized graph."""

    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def graph(self) -> dict[str, object]:
        return {"nodes": self.nodes, "edges": self.edges}


class WorkflowTransport(Protocol):
    def get_all(self, session_token: str) -> list[WorkflowSummary]: ...

    def create(
        self, session_token: str, *, name: str, description: str = ""
    ) -> WorkflowSummary: ...

    def get(self, session_token: str, workflow_id: str) -> WorkflowDocument: ...

    def save(
        self, session_token: str, workflow_id: str, graph: dict[str, object]
    ) -> WorkflowSummary: ...


class HttpWorkflowTransport:
    """Small wrapper around the workflow REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        organization_id: str | None = None,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url is required")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": "workflow-session",
            }
        )
        if organization_id:
            self._session.headers["X-Organization-Id"] = organization_id

    def _url(self, path: str) -> str:
        return f"{self._base_url}/api/workflow/{path.lstrip('/')}".rstrip("/")

    def _request(
        self,
        method: str,
        path: str,
        session_token: str,
        *,
        json: dict[str, object] | None = None,
    ) -> Any:
        if not session_token.strip():
            raise ValueError("session_token is required")

        url = self._url(path)
        headers = {"Authorization": f"Bearer {session_token}"}
        try:
            resp = self._session.request(
                method, url, json=json, headers=headers, timeout=self._timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning("Workflow API unreachable", extra={"url": url, "error": str(e)})
            raise TransportError(TransportErrorKind.NETWORK_UNAVAILABLE, str(e)) from e
        except requests.RequestException as e:
            raise TransportError(TransportErrorKind.UNKNOWN, str(e)) from e

        if resp.status_code in REJECTED_STATUS_CODES:
            logger.info(
                "Workflow API rejected request",
                extra={"url": url, "status": resp.status_code},
            )
            raise TransportError(
                TransportErrorKind.REJECTED,
                _error_detail(resp),
                status_code=resp.status_code,
            )
        if not resp.ok:
            raise TransportError(
                TransportErrorKind.UNKNOWN,
                _error_detail(resp),
                status_code=resp.status_code,
            )

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(
                TransportErrorKind.UNKNOWN,
                "Workflow API returned a non-JSON body",
                status_code=resp.status_code,
            ) from e

    def get_all(self, session_token: str) -> list[WorkflowSummary]:
        data = self._request("GET", "", session_token)
        if not isinstance(data, list):
            raise TransportError(TransportErrorKind.UNKNOWN, "Expected a list of workflows")
        return [_parse(WorkflowSummary, item) for item in data]

    def create(self, session_token: str, *, name: str, description: str = "") -> WorkflowSummary:
        logger.info("Creating workflow", extra={"workflow_name": name})
        data = self._request(
            "POST", "", session_token, json={"name": name, "description": description}
        )
        return _parse(WorkflowSummary, data)

    def get(self, session_token: str, workflow_id: str) -> WorkflowDocument:
        data = self._request("GET", workflow_id, session_token)
        return _parse(WorkflowDocument, data)

    def save(
        self, session_token: str, workflow_id: str, graph: dict[str, object]
    ) -> WorkflowSummary:
        logger.info("Saving workflow", extra={"workflow_id": workflow_id})
        data = self._request("PUT", workflow_id, session_token, json=graph)
        # Some deployments answer a save with an empty body or a bare graph.
        if not isinstance(data, dict) or "name" not in data:
            return WorkflowSummary(id=workflow_id, name="")
        return _parse(WorkflowSummary, {"id": workflow_id, **data})

    def close(self) -> None:
        self._session.close()


def _parse(model: type[WorkflowSummary], data: object) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise TransportError(
            TransportErrorKind.UNKNOWN, f"Unexpected workflow payload: {e}"
        ) from e


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.reason or f"HTTP {resp.status_code}"
    if isinstance(body, dict) and isinstance(body.get("detail"), str):
        return body["detail"]
    return resp.reason or f"HTTP {resp.status_code}"
