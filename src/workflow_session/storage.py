"""Local JSON drafts of workflow graphs, keyed by workflow id.

Used by the CLI to pull a workflow, edit or inspect it offline, validate it
and push it back.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from workflow_session.graph.model import GraphModel, GraphPolicy

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]+$")


def read_graph_file(path: Path, *, policy: GraphPolicy | None = None) -> GraphModel:
    raw: Any = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Graph file must contain a JSON object: {path}")
    return GraphModel.from_json(raw, policy=policy)


def write_graph_file(path: Path, graph: GraphModel) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(graph.to_json(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


class DraftStore:
    """One JSON file per workflow under a drafts directory."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def path_for(self, workflow_id: str) -> Path:
        if not _SAFE_ID.match(workflow_id):
            raise ValueError(f"Workflow id is not usable as a file name: {workflow_id!r}")
        return self._root / f"{workflow_id}.json"

    def exists(self, workflow_id: str) -> bool:
        return self.path_for(workflow_id).exists()

    def load(self, workflow_id: str, *, policy: GraphPolicy | None = None) -> GraphModel:
        path = self.path_for(workflow_id)
        if not path.exists():
            raise FileNotFoundError(f"No draft for workflow {workflow_id}: {path}")
        return read_graph_file(path, policy=policy)

    def save(self, workflow_id: str, graph: GraphModel) -> Path:
        path = self.path_for(workflow_id)
        write_graph_file(path, graph)
        logger.info(
            "Draft written",
            extra={"workflow_id": workflow_id, "path": str(path), "nodes": len(graph)},
        )
        return path

    def list_ids(self) -> list[str]:
        if not self._root.exists():
            return []
        return sorted(p.stem for p in self._root.iterdir() if p.is_file() and p.suffix == ".json")
