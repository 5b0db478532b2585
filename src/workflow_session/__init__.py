"""Workflow graph session engine.

Provides the in-memory block graph behind the workflow canvas:
- graph model and change-notifying mutations
- collaborator presence
- pre-save structural validation
- the save state machine and its orchestrator
"""

__version__ = "0.1.0"

from workflow_session.config import SessionSettings
from workflow_session.editor import WorkflowEditor

__all__ = ["__version__", "SessionSettings", "WorkflowEditor"]
