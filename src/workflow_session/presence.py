"""Who else is looking at the open workflow.

Presence is advisory: it never gates graph mutations or saves, and removal of
silent participants is eventual (driven by `expire`).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Literal, Protocol
from urllib.parse import quote

from workflow_session.auth import UserIdentity
from workflow_session.graph.mutations import GraphChanged

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

AVATAR_FALLBACK_URL = "https://avatar.vercel.sh/{seed}?size=32"


def avatar_for(identity: UserIdentity) -> str:
    """Avatar reference for a participant, generated when the identity has no image."""

    if identity.image:
        return identity.image
    seed = identity.email or identity.name or identity.id
    return AVATAR_FALLBACK_URL.format(seed=quote(seed, safe="@."))


@dataclass(frozen=True, slots=True)
class PresenceEntry:
    participant_id: str
    identity: UserIdentity
    joined_seq: int
    last_seen: float
    primary: bool = False

    @property
    def avatar(self) -> str:
        return avatar_for(self.identity)


NotificationType = Literal["join", "leave", "heartbeat"]


@dataclass(frozen=True, slots=True)
class PresenceNotification:
    """A message received from the presence channel."""

    type: NotificationType
    participant_id: str
    identity: UserIdentity | None = None

    @staticmethod
    def from_json(obj: Mapping[str, Any]) -> PresenceNotification:
        kind = obj.get("type")
        participant_id = obj.get("participant_id")
        if kind not in ("join", "leave", "heartbeat"):
            raise ValueError(f"Unknown presence notification type: {kind!r}")
        if not isinstance(participant_id, str) or not participant_id:
            raise ValueError("Presence notification is missing participant_id")

        identity = None
        raw = obj.get("identity")
        if isinstance(raw, Mapping):
            identity = UserIdentity(
                id=str(raw.get("id") or participant_id),
                name=raw.get("name") if isinstance(raw.get("name"), str) else None,
                email=raw.get("email") if isinstance(raw.get("email"), str) else None,
                image=raw.get("image") if isinstance(raw.get("image"), str) else None,
            )
        return PresenceNotification(type=kind, participant_id=participant_id, identity=identity)


class PresenceTracker:
    """Who is looking at the workflow right now.

    Reads (`list`, `primary`) and incoming notifications first drop
    participants whose heartbeat is older than the timeout. The local
    participant, when given, never expires.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        clock: Clock = time.monotonic,
        local_participant_id: str | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self.local_participant_id = local_participant_id
        self._entries: dict[str, PresenceEntry] = {}
        self._seq = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._entries

    def join(self, participant_id: str, identity: UserIdentity) -> PresenceEntry:
        now = self._clock()
        existing = self._entries.get(participant_id)
        if existing is not None:
            entry = replace(existing, identity=identity, last_seen=now)
        else:
            self._seq += 1
            entry = PresenceEntry(
                participant_id=participant_id,
                identity=identity,
                joined_seq=self._seq,
                last_seen=now,
            )
            logger.info("Participant joined", extra={"participant_id": participant_id})
        self._entries[participant_id] = entry
        return self._with_primary(entry)

    def leave(self, participant_id: str) -> bool:
        removed = self._entries.pop(participant_id, None)
        if removed is not None:
            logger.info("Participant left", extra={"participant_id": participant_id})
        return removed is not None

    def heartbeat(self, participant_id: str) -> bool:
        """Refresh the last-seen time. Unknown participants are ignored."""

        entry = self._entries.get(participant_id)
        if entry is None:
            return False
        self._entries[participant_id] = replace(entry, last_seen=self._clock())
        return True

    def expire(self) -> list[str]:
        """Drop participants that have been silent longer than the timeout."""

        cutoff = self._clock() - self.timeout_seconds
        stale = [
            pid
            for pid, e in self._entries.items()
            if e.last_seen < cutoff and pid != self.local_participant_id
        ]
        for pid in stale:
            del self._entries[pid]
        if stale:
            logger.info("Expired silent participants", extra={"participant_ids": stale})
        return stale

    def handle(self, notification: PresenceNotification) -> None:
        """Merge a notification from the presence channel."""

        self.expire()
        if notification.type == "join":
            identity = notification.identity or UserIdentity(id=notification.participant_id)
            self.join(notification.participant_id, identity)
        elif notification.type == "leave":
            self.leave(notification.participant_id)
        else:
            self.heartbeat(notification.participant_id)

    @property
    def primary(self) -> PresenceEntry | None:
        self.expire()
        return self._primary()

    def _primary(self) -> PresenceEntry | None:
        if not self._entries:
            return None
        first = min(self._entries.values(), key=lambda e: e.joined_seq)
        return replace(first, primary=True)

    def list(self) -> list[PresenceEntry]:
        """Entries with the most recent joiner first."""

        self.expire()
        ordered = sorted(self._entries.values(), key=lambda e: e.joined_seq, reverse=True)
        return [self._with_primary(entry) for entry in ordered]

    def _with_primary(self, entry: PresenceEntry) -> PresenceEntry:
        primary = self._primary()
        is_primary = primary is not None and primary.participant_id == entry.participant_id
        return replace(entry, primary=is_primary)


class PresenceChannel(Protocol):
    """Outbound side of the collaboration channel."""

    def publish(self, message: dict[str, object]) -> None: ...


class PresenceBroadcaster:
    """Graph subscriber that tells other participants about local edits."""

    def __init__(self, channel: PresenceChannel, *, participant_id: str, workflow_id: str) -> None:
        self._channel = channel
        self._participant_id = participant_id
        self._workflow_id = workflow_id

    def __call__(self, event: GraphChanged) -> None:
        self._channel.publish(
            {
                "type": "graph_changed",
                "workflow_id": self._workflow_id,
                "participant_id": self._participant_id,
                "change": event.to_json(),
            }
        )
