"""Workflow export and import.

Export writes the current file format; import validates the document,
migrates older versions and parses it into the graph model.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from hiveflow.models.enums import WorkflowStatus
from hiveflow.schemas.graph import WorkflowGraph
from hiveflow.schemas.validation import ExportDocument, ValidationResult
from hiveflow.services.workflow.validator import (
    CURRENT_FORMAT_VERSION,
    WorkflowValidator,
    classify_complexity,
    detect_advanced_features,
)


def export_workflow(graph: WorkflowGraph) -> ExportDocument:
    """Build the export document for a stored workflow."""
    nodes = [node.to_document() for node in graph.nodes]
    edges = [edge.to_document() for edge in graph.edges]
    features = detect_advanced_features(nodes)

    return ExportDocument(
        format_version=CURRENT_FORMAT_VERSION,
        exported_at=datetime.now(UTC),
        name=graph.name,
        description=graph.description,
        nodes=nodes,
        edges=edges,
        auto_create_task=graph.auto_create_task,
        node_count=len(nodes),
        edge_count=len(edges),
        uses_advanced_features=features or None,
        complexity=classify_complexity(len(nodes), len(features)),
    )


def import_workflow(
    data: Any, validator: WorkflowValidator | None = None
) -> tuple[ValidationResult, WorkflowGraph | None]:
    """Validate, migrate and parse an export document.

    Imported workflows always start as drafts so they are not picked up by
    the scheduler before someone reviews them.

    Returns:
        The validation report, and the parsed graph when the report is
        valid. A valid report whose nodes still fail to parse (e.g. an
        unknown condition operator) is downgraded to invalid.
    """
    validator = validator or WorkflowValidator()
    report = validator.validate(data)
    if not report.valid:
        return report, None

    document = validator.migrate_format(data)
    try:
        graph = WorkflowGraph.model_validate(
            {
                "name": document["name"],
                "description": document.get("description"),
                "nodes": document["nodes"],
                "edges": document["edges"],
                "autoCreateTask": bool(document.get("autoCreateTask", False)),
                "status": WorkflowStatus.DRAFT,
            }
        )
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
        return report.model_copy(
            update={"valid": False, "errors": errors, "compatibility": "none"}
        ), None

    return report, graph


__all__ = ["export_workflow", "import_workflow"]
