"""Third-party integrations that feed values into block inputs.

The OAuth handshake itself happens out of band. The engine only needs to
know whether a service is connected (its info call succeeds) and, if so,
which channels the user may pick for a block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import requests

from workflow_session.errors import TransportError, TransportErrorKind
from workflow_session.graph.model import Node
from workflow_session.graph.mutations import GraphMutations

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Channel:
    id: str
    name: str


class OAuthGateway(Protocol):
    def get_info(self, service: str) -> list[Channel]:
        """Return selectable channels; raises when the service is not connected."""
        ...

    def install(self, service: str, return_path: str) -> str:
        """Return the URL that starts the authorization redirect."""
        ...


class HttpOAuthGateway:
    """OAuth endpoints of the workflow API."""

    def __init__(
        self,
        *,
        base_url: str,
        session_token: str,
        organization_id: str | None = None,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not session_token.strip():
            raise ValueError("session_token is required")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {session_token}",
                "Accept": "application/json",
                "User-Agent": "workflow-session",
            }
        )
        if organization_id:
            self._session.headers["X-Organization-Id"] = organization_id

    def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        url = f"{self._base_url}/api/auth/{path.lstrip('/')}"
        try:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransportError(TransportErrorKind.NETWORK_UNAVAILABLE, str(e)) from e
        except requests.RequestException as e:
            raise TransportError(TransportErrorKind.UNKNOWN, str(e)) from e
        if not resp.ok:
            kind = (
                TransportErrorKind.REJECTED
                if resp.status_code < 500
                else TransportErrorKind.UNKNOWN
            )
            raise TransportError(
                kind,
                resp.reason or f"HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(
                TransportErrorKind.UNKNOWN,
                f"Auth API returned a non-JSON body for {path}",
                status_code=resp.status_code,
            ) from e

    def get_info(self, service: str) -> list[Channel]:
        data = self._get(f"{service}/info")
        if not isinstance(data, list):
            raise TransportError(TransportErrorKind.UNKNOWN, f"Unexpected {service} info payload")
        return [
            Channel(id=str(item["id"]), name=str(item.get("name") or item["id"]))
            for item in data
            if isinstance(item, dict) and "id" in item
        ]

    def install(self, service: str, return_path: str) -> str:
        data = self._get(service, params={"redirect": return_path})
        if not isinstance(data, str) or not data.strip():
            raise TransportError(TransportErrorKind.UNKNOWN, f"No install URL for {service}")
        return data


class IntegrationState(str, Enum):
    UNKNOWN = "unknown"
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class IntegrationSelector:
    """Connect-or-pick widget state for one block input.

    DISCONNECTED means the UI should offer "Connect <service>"; CONNECTED means
    it should offer the channel list.
    """

    def __init__(
        self,
        *,
        gateway: OAuthGateway,
        service: str,
        mutations: GraphMutations,
        node_id: str,
        field: str = "channel",
    ) -> None:
        self._gateway = gateway
        self.service = service
        self._mutations = mutations
        self.node_id = node_id
        self.field = field

        self.state = IntegrationState.UNKNOWN
        self.channels: list[Channel] = []

    @property
    def selected(self) -> Channel | None:
        node = self._mutations.graph.get_node(self.node_id)
        if node is None:
            return None
        value = node.input.get(self.field)
        if not isinstance(value, str) or not value:
            return None
        for channel in self.channels:
            if channel.id == value:
                return channel
        return Channel(id=value, name=value)

    def refresh(self) -> IntegrationState:
        """Probe the service; any failure of the info call means "not connected"."""

        try:
            self.channels = self._gateway.get_info(self.service)
        except Exception as e:
            logger.info(
                "Integration not connected",
                extra={"service": self.service, "error": str(e)},
            )
            self.channels = []
            self.state = IntegrationState.DISCONNECTED
        else:
            self.state = IntegrationState.CONNECTED
        return self.state

    def begin_install(self, return_path: str) -> str:
        url = self._gateway.install(self.service, return_path)
        logger.info("Starting integration install", extra={"service": self.service})
        return url

    def select(self, channel_id: str) -> Node:
        if self.state is not IntegrationState.CONNECTED:
            raise ValueError(f"{self.service} is not connected")
        if not any(channel.id == channel_id for channel in self.channels):
            raise ValueError(f"Unknown {self.service} channel: {channel_id}")
        return self._mutations.update_node(self.node_id, {"input": {self.field: channel_id}})
