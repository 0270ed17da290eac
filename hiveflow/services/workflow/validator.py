"""Workflow document validation and format migration.

This module checks candidate workflow documents coming from the authoring
API or from imported files. Candidates have unknown shape, so every check
guards its own types and records a message instead of raising. All
defects are collected so an importer can show a complete report.

Format versions:
    1.0: original export format (no counts, no exportedAt)
    2.0: current format
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Final

from hiveflow.core.logging import get_logger
from hiveflow.models.enums import Compatibility, Complexity, NodeType
from hiveflow.schemas.validation import ValidationResult
from hiveflow.services.workflow.algorithms import GraphAlgorithms
from hiveflow.services.workflow.graph import Graph

logger = get_logger(__name__)

CURRENT_FORMAT_VERSION: Final = "2.0"
LEGACY_FORMAT_VERSION: Final = "1.0"
SUPPORTED_FORMAT_VERSIONS: Final = frozenset({LEGACY_FORMAT_VERSION, CURRENT_FORMAT_VERSION})

# Legacy editors exported explicit start/end nodes
LEGACY_NODE_TYPES: Final = frozenset({"start", "end"})
SUPPORTED_NODE_TYPES: Final = frozenset(
    {node_type.value for node_type in NodeType} | LEGACY_NODE_TYPES
)
ROOT_NODE_TYPES: Final = frozenset({"start", NodeType.TRIGGER.value})

FEATURE_LOOP: Final = "loop"
FEATURE_SUBWORKFLOW: Final = "subworkflow"
FEATURE_EXPERT_CONDITION: Final = "expert-condition"

OLD_FORMAT_WARNING: Final = (
    "Old format version (1.0) detected. Consider re-exporting with newer format."
)


def classify_complexity(node_count: int, advanced_feature_count: int) -> Complexity:
    """Heuristic size class for export documents."""
    if node_count > 20 or advanced_feature_count > 2:
        return Complexity.COMPLEX
    if node_count > 10 or advanced_feature_count > 0:
        return Complexity.MEDIUM
    return Complexity.SIMPLE


def detect_advanced_features(nodes: Any) -> list[str]:
    """Feature names used by a node list, in a stable order.

    Nested condition groups count as ``expert-condition``.
    """
    if not isinstance(nodes, list):
        return []

    found: set[str] = set()
    for node in nodes:
        if not isinstance(node, Mapping):
            continue
        node_type = node.get("type")
        if node_type == NodeType.LOOP.value:
            found.add(FEATURE_LOOP)
        elif node_type == NodeType.SUBWORKFLOW.value:
            found.add(FEATURE_SUBWORKFLOW)
        elif node_type == NodeType.CONDITIONAL.value:
            group = _mapping(node.get("data")).get("conditionGroup")
            if isinstance(group, Mapping) and group.get("groups"):
                found.add(FEATURE_EXPERT_CONDITION)

    order = (FEATURE_LOOP, FEATURE_SUBWORKFLOW, FEATURE_EXPERT_CONDITION)
    return [feature for feature in order if feature in found]


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _is_coordinate(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _has_reference(value: Any) -> bool:
    return _has_text(value) or (isinstance(value, int) and not isinstance(value, bool))


class WorkflowValidator:
    """Stateless validator for candidate workflow documents.

    Example:
        >>> validator = WorkflowValidator()
        >>> report = validator.validate({"formatVersion": "3.0"})
        >>> report.valid, report.compatibility
        (False, 'none')
    """

    @staticmethod
    def format_version(candidate: Mapping[str, Any]) -> str:
        """Declared format version, ``formatVersion`` first, then ``version``."""
        version = candidate.get("formatVersion") or candidate.get("version")
        return LEGACY_FORMAT_VERSION if version is None else str(version)

    def validate(self, candidate: Any) -> ValidationResult:
        """Validate a candidate workflow document.

        Never raises: every defect becomes an error or warning message.

        Args:
            candidate: Parsed JSON of unknown shape.

        Returns:
            ValidationResult with all errors, warnings, counts, feature
            flags and compatibility.
        """
        if not isinstance(candidate, Mapping):
            return self._report(["Workflow data must be an object"], [])

        version = self.format_version(candidate)
        if version not in SUPPORTED_FORMAT_VERSIONS:
            return self._report([f"Unsupported format version: {version}"], [])

        errors: list[str] = []
        warnings: list[str] = []
        if version == LEGACY_FORMAT_VERSION:
            warnings.append(OLD_FORMAT_WARNING)

        if not _has_text(candidate.get("name")):
            errors.append("Workflow name is required and must be a string")

        nodes = candidate.get("nodes")
        edges = candidate.get("edges")
        if not isinstance(nodes, list):
            errors.append("Workflow nodes must be an array")
        if not isinstance(edges, list):
            errors.append("Workflow edges must be an array")
        if not isinstance(nodes, list) or not isinstance(edges, list):
            return self._report(errors, warnings)

        node_ids = self._check_nodes(nodes, errors)
        connected_edges = self._check_edges(edges, node_ids, errors)
        features = detect_advanced_features(nodes)

        graph = Graph.from_edges(node_ids, connected_edges)
        self._check_roots(nodes, graph, warnings)
        if not errors:
            cycle = GraphAlgorithms.detect_cycle(graph)
            if cycle:
                warnings.append(f"Workflow contains a cycle: {' -> '.join(cycle)}")

        return self._report(
            errors,
            warnings,
            node_count=len(nodes),
            edge_count=len(edges),
            features=features,
        )

    def _check_nodes(self, nodes: list[Any], errors: list[str]) -> list[str]:
        node_ids: list[str] = []
        seen: set[str] = set()

        for index, node in enumerate(nodes):
            prefix = f"Node {index}:"
            if not isinstance(node, Mapping):
                errors.append(f"{prefix} Node must be an object")
                continue

            node_id = node.get("id")
            if not _has_text(node_id):
                errors.append(f"{prefix} Missing or invalid id")
            elif node_id in seen:
                errors.append(f"Duplicate node ID: {node_id}")
            else:
                seen.add(node_id)
                node_ids.append(node_id)

            node_type = node.get("type")
            if not _has_text(node_type):
                errors.append(f"{prefix} Missing or invalid type")
            elif node_type not in SUPPORTED_NODE_TYPES:
                errors.append(f"{prefix} Unsupported node type: {node_type}")

            position = node.get("position")
            if not (
                isinstance(position, Mapping)
                and _is_coordinate(position.get("x"))
                and _is_coordinate(position.get("y"))
            ):
                errors.append(f"{prefix} Missing or invalid position")

            data = _mapping(node.get("data"))
            message = self._check_variant(node_type, data)
            if message:
                errors.append(f"{prefix} {message}")

        return node_ids

    @staticmethod
    def _check_variant(node_type: Any, data: Mapping[str, Any]) -> str | None:
        match node_type:
            case NodeType.CONDITIONAL.value:
                if not data.get("condition") and not data.get("conditionGroup"):
                    return "Conditional node must have condition or conditionGroup"
            case NodeType.LOOP.value:
                loop_type = data.get("loopType") or _mapping(data.get("loopConfig")).get(
                    "type"
                )
                if not _has_text(loop_type):
                    return "Loop node must have loopType"
            case NodeType.SUBWORKFLOW.value:
                target = data.get("workflowId") or _mapping(
                    data.get("subworkflowConfig")
                ).get("workflowId")
                if not _has_reference(target):
                    return "Subworkflow node must have workflowId"
            case NodeType.TASK.value:
                if not _has_reference(data.get("taskTemplateId")) and not _has_reference(
                    data.get("taskId")
                ):
                    return "Task node must have taskTemplateId"
        return None

    @staticmethod
    def _check_edges(
        edges: list[Any], node_ids: list[str], errors: list[str]
    ) -> list[tuple[str, str]]:
        known = set(node_ids)
        connected: list[tuple[str, str]] = []

        for index, edge in enumerate(edges):
            prefix = f"Edge {index}:"
            if not isinstance(edge, Mapping):
                errors.append(f"{prefix} Edge must be an object")
                continue

            if not _has_text(edge.get("id")):
                errors.append(f"{prefix} Missing or invalid id")

            source, target = edge.get("source"), edge.get("target")
            source_ok = isinstance(source, str) and source in known
            target_ok = isinstance(target, str) and target in known
            if not source_ok:
                errors.append(f"{prefix} Source node '{source}' not found")
            if not target_ok:
                errors.append(f"{prefix} Target node '{target}' not found")
            if source_ok and target_ok:
                connected.append((source, target))

        return connected

    @staticmethod
    def _check_roots(
        nodes: list[Any], graph: Graph[str], warnings: list[str]
    ) -> None:
        # Malformed ids and types are already reported as errors
        roots = [
            node["id"]
            for node in nodes
            if isinstance(node, Mapping)
            and isinstance(node.get("type"), str)
            and node["type"] in ROOT_NODE_TYPES
            and _has_text(node.get("id"))
        ]
        if not roots:
            warnings.append(
                "No start/trigger node found. Workflow may not execute properly."
            )
        elif len(roots) > 1:
            warnings.append(
                f"Multiple start/trigger nodes found ({len(roots)}). "
                "Only the first will be used."
            )

        disconnected = GraphAlgorithms.find_disconnected(graph, exclude=roots)
        if disconnected:
            warnings.append(
                f"Found {len(disconnected)} disconnected node(s): "
                f"{', '.join(disconnected)}"
            )

    @staticmethod
    def _report(
        errors: list[str],
        warnings: list[str],
        *,
        node_count: int = 0,
        edge_count: int = 0,
        features: list[str] | None = None,
    ) -> ValidationResult:
        if errors:
            compatibility = Compatibility.NONE
        elif warnings:
            compatibility = Compatibility.PARTIAL
        else:
            compatibility = Compatibility.FULL

        return ValidationResult(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            node_count=node_count,
            edge_count=edge_count,
            has_advanced_features=bool(features),
            advanced_features=features or [],
            compatibility=compatibility,
        )

    def migrate_format(self, data: Any) -> Any:
        """Bring an older document up to the current format.

        Pure: the input is never modified. Documents already at the current
        version, and unknown versions, are returned unchanged, so migrating
        twice gives the same result as migrating once.
        """
        if not isinstance(data, Mapping):
            return data
        if self.format_version(data) != LEGACY_FORMAT_VERSION:
            return data

        migrated: dict[str, Any] = copy.deepcopy(dict(data))
        migrated.pop("version", None)
        nodes = migrated.get("nodes") if isinstance(migrated.get("nodes"), list) else []
        edges = migrated.get("edges") if isinstance(migrated.get("edges"), list) else []
        features = detect_advanced_features(nodes)

        migrated["formatVersion"] = CURRENT_FORMAT_VERSION
        migrated.setdefault("exportedAt", datetime.now(UTC).isoformat())
        migrated.setdefault("description", None)
        migrated.setdefault("autoCreateTask", False)
        migrated["nodeCount"] = len(nodes)
        migrated["edgeCount"] = len(edges)
        migrated.setdefault("usesAdvancedFeatures", features)
        migrated.setdefault(
            "complexity", str(classify_complexity(len(nodes), len(features)))
        )

        logger.info(
            "Migrated workflow document to current format",
            extra={
                "context": {
                    "from_version": LEGACY_FORMAT_VERSION,
                    "to_version": CURRENT_FORMAT_VERSION,
                    "node_count": len(nodes),
                }
            },
        )
        return migrated


__all__ = [
    "CURRENT_FORMAT_VERSION",
    "SUPPORTED_FORMAT_VERSIONS",
    "SUPPORTED_NODE_TYPES",
    "WorkflowValidator",
    "classify_complexity",
    "detect_advanced_features",
]
