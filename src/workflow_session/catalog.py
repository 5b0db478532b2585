"""Block catalog used to populate the "add node" dialog.

The catalog is closed: the editor only places blocks whose type appears here.
The engine itself never interprets a block's type beyond this membership check.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from workflow_session.errors import UnknownBlockType


@dataclass(frozen=True, slots=True)
class BlockDefinition:
    type: str
    name: str
    icon: str
    description: str = ""


DEFAULT_BLOCKS: tuple[BlockDefinition, ...] = (
    BlockDefinition(
        type="ManualTriggerBlock",
        name="Manual Trigger",
        icon="trigger",
        description="Start the workflow by hand",
    ),
    BlockDefinition(
        type="APITriggerBlock",
        name="API Trigger",
        icon="webhook",
        description="Start the workflow from an HTTP request",
    ),
    BlockDefinition(
        type="UrlStatusCheck",
        name="URL Status Check",
        icon="globe",
        description="Check that a URL responds",
    ),
    BlockDefinition(
        type="IfCondition",
        name="If Condition",
        icon="branch",
        description="Branch on a condition",
    ),
    BlockDefinition(
        type="WebAnalyzer",
        name="Web Analyzer",
        icon="search",
        description="Summarize the contents of a web page",
    ),
    BlockDefinition(
        type="SummaryAgent",
        name="Summary Agent",
        icon="document",
        description="Summarize uploaded documents",
    ),
    BlockDefinition(
        type="SlackWebhook",
        name="Slack Message",
        icon="slack",
        description="Post a message to a Slack channel",
    ),
)


class BlockCatalog:
    def __init__(self, definitions: Iterable[BlockDefinition] = DEFAULT_BLOCKS) -> None:
        self._definitions: dict[str, BlockDefinition] = {}
        for definition in definitions:
            if definition.type in self._definitions:
                raise ValueError(f"Duplicate block type in catalog: {definition.type}")
            self._definitions[definition.type] = definition

    def __iter__(self) -> Iterator[BlockDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, block_type: object) -> bool:
        return block_type in self._definitions

    def get(self, block_type: str) -> BlockDefinition:
        try:
            return self._definitions[block_type]
        except KeyError:
            raise UnknownBlockType(block_type) from None
