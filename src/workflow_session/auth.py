"""Session provider contract.

Authentication happens elsewhere; the engine only receives an opaque token
together with the signed-in user's identity and organization membership.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from workflow_session.errors import SessionRequired


@dataclass(frozen=True, slots=True)
class UserIdentity:
    id: str
    name: str | None = None
    email: str | None = None
    image: str | None = None


@dataclass(frozen=True, slots=True)
class Organization:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Session:
    token: str
    user: UserIdentity
    organizations: tuple[Organization, ...] = field(default_factory=tuple)

    @property
    def organization(self) -> Organization | None:
        """The organization requests are made on behalf of (the first membership)."""

        return self.organizations[0] if self.organizations else None


def require_session(session: Session | None, *, require_organization: bool = False) -> Session:
    """Return the session, or raise when there is none.

    With `require_organization`, a user who belongs to no organization is
    refused as well; the editor and the save pipeline act on behalf of one.

    Raises:
        SessionRequired: If no session is present, its token is blank, or an
            organization is required and the user has none.
    """

    if session is None or not session.token.strip():
        raise SessionRequired("An authenticated session is required")
    if require_organization and session.organization is None:
        raise SessionRequired("The signed-in user does not belong to an organization")
    return session
