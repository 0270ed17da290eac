"""Outcome types produced by the node executor and the execution controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from hiveflow.models.enums import ExecutionStatus


@dataclass
class NodeOutcome:
    """Result of executing one node.

    Attributes:
        success: Whether the node finished without error.
        output: Value recorded for the node and fed to its successors.
        error: Failure text when success is False.
        branch: For conditional nodes, the taken branch ("true"/"false").
        duration_ms: Wall-clock time spent in the node.
        cancelled: The failure came from the run being cancelled.
    """

    success: bool
    output: Any = None
    error: str | None = None
    branch: str | None = None
    duration_ms: float = 0.0
    cancelled: bool = False

    @classmethod
    def ok(cls, output: Any = None, *, branch: str | None = None) -> NodeOutcome:
        return cls(success=True, output=output, branch=branch)

    @classmethod
    def failed(cls, error: str, *, cancelled: bool = False) -> NodeOutcome:
        return cls(success=False, error=error, cancelled=cancelled)


@dataclass
class ExecutionResult:
    """Result of a workflow run.

    Attributes:
        execution_id: Persisted record id, None when the run never started
            (e.g. the workflow does not exist).
        workflow_id: The executed workflow.
        status: Terminal status of the run.
        error: Top-level error text for failed runs.
        node_results: Node id (plus the trigger key) to output.
        skipped_nodes: Nodes pruned because no live edge reached them.
        duration_ms: Total run time.
    """

    execution_id: int | None
    workflow_id: int
    status: ExecutionStatus
    error: str | None = None
    node_results: dict[str, Any] = field(default_factory=dict)
    skipped_nodes: list[str] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS


__all__ = ["ExecutionResult", "NodeOutcome"]
