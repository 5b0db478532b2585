#!/usr/bin/env python3
"""Programmatic editing example.

This demonstrates using the session components directly:

* load settings from `.env`
* open a workflow and add two connected blocks
* validate and save through the save orchestrator

The workflow id is passed as an argument (not read from `.env`).
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from workflow_session.auth import Organization, Session, UserIdentity
from workflow_session.config import SessionSettings
from workflow_session.editor import WorkflowEditor
from workflow_session.errors import SessionRequired
from workflow_session.graph.model import Position
from workflow_session.logging import configure_logging
from workflow_session.transport import HttpWorkflowTransport


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add a status check to a workflow and save it.")
    parser.add_argument("--workflow-id", required=True, help="Workflow to edit")
    parser.add_argument("--url", required=True, help="URL the status check should request")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = SessionSettings()
    configure_logging(settings.log_level)

    organizations: tuple[Organization, ...] = ()
    if settings.organization_id:
        organizations = (Organization(id=settings.organization_id, name=settings.organization_id),)
    session = Session(
        token=settings.session_token,
        user=UserIdentity(id="example"),
        organizations=organizations,
    )
    transport = HttpWorkflowTransport(
        base_url=settings.api_base_url,
        organization_id=session.organization.id if session.organization else None,
        timeout_seconds=settings.request_timeout_seconds,
    )

    try:
        editor = WorkflowEditor(session=session, transport=transport, policy=settings.graph_policy)
    except SessionRequired as exc:
        transport.close()
        print(f"{exc} (set WORKFLOW_SESSION_TOKEN and WORKFLOW_ORGANIZATION_ID)")
        return 2

    try:
        editor.open(args.workflow_id)
        trigger = editor.create_node("ManualTriggerBlock", position=Position(0, 0))
        check = editor.create_node(
            "UrlStatusCheck", position=Position(250, 0), input={"url": args.url}
        )
        editor.mutations.add_edge(trigger.id, check.id)

        outcome = asyncio.run(editor.save())
    finally:
        editor.close()
        transport.close()

    print(outcome.message)
    for issue in outcome.issues:
        print(f"  - {issue.message}")
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
