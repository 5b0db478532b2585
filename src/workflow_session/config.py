"""Configuration for the workflow session engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

The session token is optional here: library callers usually pass a `Session`
explicitly, while the CLI reads `WORKFLOW_SESSION_TOKEN`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_session.graph.model import GraphPolicy


class SessionSettings(BaseSettings):
    """Settings for the workflow session engine.

    Environment variables:
    - WORKFLOW_API_BASE_URL
    - WORKFLOW_SESSION_TOKEN            (required by the CLI commands that hit the API)
    - WORKFLOW_ORGANIZATION_ID          (required by the CLI commands that hit the API)
    - LOG_LEVEL                         (optional)
    - WORKFLOW_ORPHAN_NODES_BLOCK_SAVE  (optional)
    - WORKFLOW_ALLOW_DUPLICATE_EDGES    (optional)
    - WORKFLOW_PRESENCE_TIMEOUT_SECONDS (optional)
    - WORKFLOW_REQUEST_TIMEOUT_SECONDS  (optional)
    - WORKFLOW_DRAFT_PATH               (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `SessionSettings(_env_file=path_to_env)`.
    """

    api_base_url: str = Field(
        default="http://localhost:8000",
        validation_alias="WORKFLOW_API_BASE_URL",
        description="Base URL of the workflow persistence API",
    )
    session_token: str = Field(
        default="",
        validation_alias="WORKFLOW_SESSION_TOKEN",
        description="Opaque bearer token issued by the session provider",
    )
    organization_id: str = Field(
        default="",
        validation_alias="WORKFLOW_ORGANIZATION_ID",
        description="Organization the CLI acts on behalf of",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    orphan_nodes_block_save: bool = Field(
        default=True,
        validation_alias="WORKFLOW_ORPHAN_NODES_BLOCK_SAVE",
        description="Report unconnected blocks as validation issues",
    )
    allow_duplicate_edges: bool = Field(
        default=False,
        validation_alias="WORKFLOW_ALLOW_DUPLICATE_EDGES",
        description="Permit repeated connections with the same endpoints and handles",
    )

    presence_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="WORKFLOW_PRESENCE_TIMEOUT_SECONDS",
        description="Silence after which a participant is dropped from presence",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="WORKFLOW_REQUEST_TIMEOUT_SECONDS",
        description="Timeout applied to every persistence request",
    )

    draft_path: Path = Field(
        default=Path("workflow_drafts"),
        validation_alias="WORKFLOW_DRAFT_PATH",
        description="Directory where local workflow drafts are kept",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("WORKFLOW_API_BASE_URL must not be empty")
        return value.rstrip("/")

    @property
    def graph_policy(self) -> GraphPolicy:
        return GraphPolicy(
            orphan_nodes_block_save=self.orphan_nodes_block_save,
            allow_duplicate_edges=self.allow_duplicate_edges,
        )
