"""Tests for workflow export and import."""

from hiveflow.models.enums import Compatibility, Complexity, WorkflowStatus
from hiveflow.services.workflow.transfer import export_workflow, import_workflow


class TestExportWorkflow:
    """Test building export documents."""

    def test_export_document(self, make_graph):
        graph = make_graph(
            [
                {"id": "t", "type": "trigger", "data": {"triggerType": "webhook"}},
                {"id": "m", "type": "merge"},
            ],
            [("t", "m")],
            description="Merge everything",
            autoCreateTask=True,
        )

        document = export_workflow(graph)

        assert document.format_version == "2.0"
        assert document.name == "Test Workflow"
        assert document.description == "Merge everything"
        assert document.auto_create_task is True
        assert document.node_count == 2
        assert document.edge_count == 1
        assert document.uses_advanced_features is None
        assert document.complexity == Complexity.SIMPLE
        assert document.nodes[0]["data"]["triggerType"] == "webhook"
        assert document.edges[0] == {"id": "e0", "source": "t", "target": "m"}

    def test_export_lists_advanced_features(self, make_graph):
        graph = make_graph(
            [
                {"id": "loop", "type": "loop", "data": {"loopType": "count"}},
                {"id": "sub", "type": "subworkflow", "data": {"workflowId": 2}},
            ]
        )

        document = export_workflow(graph)

        assert document.uses_advanced_features == ["loop", "subworkflow"]
        assert document.complexity == Complexity.MEDIUM

    def test_export_then_import_keeps_graph(self, make_graph):
        graph = make_graph(
            [
                {"id": "t", "type": "trigger"},
                {
                    "id": "c",
                    "type": "conditional",
                    "data": {
                        "condition": {
                            "field": "ok",
                            "operator": "equals",
                            "value": True,
                        }
                    },
                },
            ],
            [("t", "c")],
        )
        document = export_workflow(graph).model_dump(mode="json", by_alias=True)

        report, imported = import_workflow(document)

        assert report.valid is True
        assert imported is not None
        assert [node.to_document() for node in imported.nodes] == document["nodes"]


class TestImportWorkflow:
    """Test validating, migrating and parsing imports."""

    def test_import_is_always_a_draft(self, make_graph):
        graph = make_graph([{"id": "t", "type": "trigger"}], status="active")
        document = export_workflow(graph).model_dump(mode="json", by_alias=True)

        _, imported = import_workflow(document)

        assert imported is not None
        assert imported.status == WorkflowStatus.DRAFT

    def test_legacy_import_is_migrated(self):
        document = {
            "version": "1.0",
            "name": "Old export",
            "nodes": [
                {
                    "id": "start",
                    "type": "trigger",
                    "position": {"x": 0, "y": 0},
                    "data": {},
                }
            ],
            "edges": [],
        }

        report, imported = import_workflow(document)

        assert report.valid is True
        assert report.compatibility == Compatibility.PARTIAL
        assert imported is not None
        assert imported.name == "Old export"

    def test_invalid_import_returns_no_graph(self):
        report, imported = import_workflow({"formatVersion": "3.0"})

        assert imported is None
        assert report.valid is False

    def test_unparseable_node_downgrades_report(self):
        document = {
            "formatVersion": "2.0",
            "name": "Bad operator",
            "nodes": [
                {
                    "id": "c",
                    "type": "conditional",
                    "position": {"x": 0, "y": 0},
                    "data": {
                        "condition": {"field": "x", "operator": "between", "value": 1}
                    },
                }
            ],
            "edges": [],
        }

        report, imported = import_workflow(document)

        assert imported is None
        assert report.valid is False
        assert report.compatibility == Compatibility.NONE
        assert any("operator" in error for error in report.errors)
