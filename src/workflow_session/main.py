"""CLI entrypoint for working with workflow graphs outside the canvas.

Lets a user validate a graph file, list and create workflows, pull a workflow
into a local draft and push a draft back through the same save pipeline the
editor uses.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from pydantic import ValidationError

from workflow_session import __version__
from workflow_session.auth import Organization, Session, UserIdentity, require_session
from workflow_session.config import SessionSettings
from workflow_session.errors import SessionRequired, TransportError
from workflow_session.graph.model import GraphModel
from workflow_session.logging import configure_logging
from workflow_session.storage import DraftStore, read_graph_file
from workflow_session.sync.orchestrator import SaveOrchestrator, SaveOutcomeKind
from workflow_session.transport import HttpWorkflowTransport
from workflow_session.validation import validate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INVALID = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-session",
        description="Validate, pull and save workflow graphs",
    )
    parser.add_argument("--version", action="version", version=f"workflow-session {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_cmd = subparsers.add_parser("validate", help="Check a graph file before saving")
    validate_cmd.add_argument("file", type=Path, help="Path to a graph JSON file")
    validate_cmd.add_argument(
        "--allow-orphans",
        action="store_true",
        help="Do not report unconnected blocks",
    )

    subparsers.add_parser("list", help="List workflows visible to the session")

    create = subparsers.add_parser("create", help="Create an empty workflow")
    create.add_argument("--name", required=True, help="Workflow name")
    create.add_argument("--description", default="", help="Workflow description")

    pull = subparsers.add_parser("pull", help="Download a workflow graph into the drafts folder")
    pull.add_argument("--workflow-id", required=True, help="Workflow to download")

    save = subparsers.add_parser("save", help="Validate and persist a workflow graph")
    save.add_argument("--workflow-id", required=True, help="Workflow to save")
    save.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Graph JSON file to save (defaults to the workflow's draft)",
    )

    return parser


def _session_from_settings(settings: SessionSettings) -> Session:
    organizations: tuple[Organization, ...] = ()
    if settings.organization_id:
        organizations = (Organization(id=settings.organization_id, name=settings.organization_id),)
    return require_session(
        Session(
            token=settings.session_token,
            user=UserIdentity(id="cli"),
            organizations=organizations,
        ),
        require_organization=True,
    )


def _transport(settings: SessionSettings, session: Session) -> HttpWorkflowTransport:
    organization = session.organization
    return HttpWorkflowTransport(
        base_url=settings.api_base_url,
        organization_id=organization.id if organization else None,
        timeout_seconds=settings.request_timeout_seconds,
    )


def _print_issues(graph: GraphModel, *, allow_orphans: bool = False) -> int:
    policy = graph.policy
    if allow_orphans:
        policy = replace(policy, orphan_nodes_block_save=False)
    result = validate(graph, policy)
    print(json.dumps(result.to_dict(), indent=2))
    return EXIT_OK if result.is_valid else EXIT_INVALID


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = SessionSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_USAGE

    configure_logging(settings.log_level)

    try:
        if args.command == "validate":
            graph = read_graph_file(args.file, policy=settings.graph_policy)
            return _print_issues(graph, allow_orphans=args.allow_orphans)

        session = _session_from_settings(settings)
        transport = _transport(settings, session)
        drafts = DraftStore(settings.draft_path)

        try:
            if args.command == "list":
                for summary in transport.get_all(session.token):
                    print(f"{summary.id}\t{summary.name}")
                return EXIT_OK

            if args.command == "create":
                if not args.name.strip():
                    print("Please enter a workflow name.", file=sys.stderr)
                    return EXIT_USAGE
                summary = transport.create(
                    session.token, name=args.name.strip(), description=args.description
                )
                print(f"Created workflow {summary.id}: {summary.name}")
                return EXIT_OK

            if args.command == "pull":
                document = transport.get(session.token, args.workflow_id)
                graph = GraphModel.from_json(document.graph, policy=settings.graph_policy)
                path = drafts.save(document.id, graph)
                print(f"Pulled {document.name!r} to {path}")
                return EXIT_OK

            if args.command == "save":
                if args.file is not None:
                    graph = read_graph_file(args.file, policy=settings.graph_policy)
                else:
                    graph = drafts.load(args.workflow_id, policy=settings.graph_policy)

                orchestrator = SaveOrchestrator(
                    graph=graph,
                    transport=transport,
                    session=session,
                    workflow_id=args.workflow_id,
                )
                outcome = asyncio.run(orchestrator.save())
                if outcome.ok:
                    print(outcome.message)
                    return EXIT_OK

                print(outcome.message, file=sys.stderr)
                for issue in outcome.issues:
                    print(f"  - {issue.message}", file=sys.stderr)
                if outcome.kind in (SaveOutcomeKind.VALIDATION_FAILED, SaveOutcomeKind.REJECTED):
                    return EXIT_INVALID
                return EXIT_FAILED
        finally:
            transport.close()

        logger.error("Unknown command", extra={"command": args.command})
        return EXIT_USAGE

    except SessionRequired as e:
        print(
            f"{e} (set WORKFLOW_SESSION_TOKEN and WORKFLOW_ORGANIZATION_ID)", file=sys.stderr
        )
        return EXIT_USAGE

    except TransportError as e:
        logger.warning(str(e), extra={"kind": e.kind.value, "status": e.status_code})
        print(f"Request failed ({e.kind.value}): {e}", file=sys.stderr)
        return EXIT_FAILED

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
