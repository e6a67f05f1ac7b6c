"""Tests for pipeline database operations with mocked Supabase."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from app.core.schemas_pipeline import ACTIVE_RUN_STATUSES, RunCounters


@pytest.fixture
def mock_supabase():
    """Fixture to mock the Supabase client in every pipeline db module."""
    mock_client = MagicMock()
    with (
        patch("app.db.pipeline_runs.get_supabase", return_value=mock_client),
        patch("app.db.documents.get_supabase", return_value=mock_client),
        patch("app.db.conflicts.get_supabase", return_value=mock_client),
        patch("app.db.projects.get_supabase", return_value=mock_client),
    ):
        yield mock_client


class TestClaimPipelineRun:
    def test_returns_claimed_row(self, mock_supabase):
        from app.db.pipeline_runs import claim_pipeline_run

        project_id = uuid4()
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(
            data=[{"id": "run-1", "status": "ingesting"}]
        )

        run = claim_pipeline_run(project_id)

        assert run == {"id": "run-1", "status": "ingesting"}
        mock_supabase.rpc.assert_called_once_with(
            "claim_pipeline_run", {"p_project_id": str(project_id)}
        )

    @pytest.mark.parametrize("payload", [None, [], {"id": None, "status": None}])
    def test_returns_none_when_another_run_is_active(self, mock_supabase, payload):
        from app.db.pipeline_runs import claim_pipeline_run

        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data=payload)

        assert claim_pipeline_run(uuid4()) is None

    def test_propagates_database_errors(self, mock_supabase):
        from app.db.pipeline_runs import claim_pipeline_run

        mock_supabase.rpc.return_value.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(RuntimeError):
            claim_pipeline_run(uuid4())


class TestUpdateRun:
    def test_status_change_never_overwrites_cancelled(self, mock_supabase):
        from app.db.pipeline_runs import update_run

        run_id = uuid4()

        update_run(run_id, status="extracting_decisions")

        update = mock_supabase.table.return_value.update
        assert update.call_args[0][0] == {"status": "extracting_decisions"}
        update.return_value.eq.assert_called_once_with("id", str(run_id))
        update.return_value.eq.return_value.neq.assert_called_once_with("status", "cancelled")

    def test_terminal_status_stamps_completion(self, mock_supabase):
        from app.db.pipeline_runs import update_run

        update_run(uuid4(), status="failed", error="OpenAI error: rate limited")

        patch_body = mock_supabase.table.return_value.update.call_args[0][0]
        assert patch_body["status"] == "failed"
        assert patch_body["error"] == "OpenAI error: rate limited"
        assert patch_body["completed_at"]

    def test_counters_are_flat_columns(self, mock_supabase):
        from app.db.pipeline_runs import update_run

        update_run(uuid4(), counters=RunCounters(sources_processed=2, requirements_found=5))

        update = mock_supabase.table.return_value.update
        assert update.call_args[0][0]["requirements_found"] == 5
        assert update.call_args[0][0]["sources_processed"] == 2
        update.return_value.eq.return_value.neq.assert_not_called()

    def test_empty_update_is_skipped(self, mock_supabase):
        from app.db.pipeline_runs import update_run

        update_run(uuid4())

        mock_supabase.table.assert_not_called()


class TestCancelAndDelete:
    def test_cancel_only_targets_active_statuses(self, mock_supabase):
        from app.db.pipeline_runs import cancel_active_runs

        project_id = uuid4()
        chain = mock_supabase.table.return_value.update.return_value.eq.return_value.in_
        chain.return_value.execute.return_value = MagicMock(data=[{"id": "a"}, {"id": "b"}])

        assert cancel_active_runs(project_id) == 2
        chain.assert_called_once_with("status", list(ACTIVE_RUN_STATUSES))

    def test_delete_runs_with_no_ids(self, mock_supabase):
        from app.db.pipeline_runs import delete_runs

        assert delete_runs([]) == 0
        mock_supabase.table.assert_not_called()


class TestStoreDocument:
    def test_appends_next_version(self, mock_supabase):
        from app.db.documents import store_document

        project_id = uuid4()
        table = mock_supabase.table.return_value
        table.select.return_value.eq.return_value.eq.return_value.order.return_value.execute.return_value = (
            MagicMock(data=[{"version": 2}, {"version": 1}])
        )
        table.insert.return_value.execute.return_value = MagicMock(
            data=[{"id": "doc-3", "version": 3}]
        )

        document = store_document(
            project_id, "brd", {"executiveSummary": "..."}, generated_from={"requirements": 3}
        )

        assert document["version"] == 3
        inserted = table.insert.call_args[0][0]
        assert inserted["version"] == 3
        assert inserted["status"] == "ready"
        assert inserted["generated_from"] == {"requirements": 3}
        table.update.assert_called_once_with({"status": "superseded"})
        supersede = table.update.return_value.eq.return_value.eq.return_value.eq.return_value.neq
        supersede.assert_called_once_with("id", "doc-3")

        call_names = [c[0] for c in table.mock_calls]
        assert call_names.index("insert") < call_names.index("update")

    def test_raises_when_insert_returns_nothing(self, mock_supabase):
        from app.db.documents import store_document

        mock_supabase.table.return_value.insert.return_value.execute.return_value = MagicMock(
            data=[]
        )

        with pytest.raises(ValueError):
            store_document(uuid4(), "brd", {})

        mock_supabase.table.return_value.update.assert_not_called()

    def test_failed_insert_keeps_previous_version_ready(self, mock_supabase):
        from app.db.documents import store_document

        table = mock_supabase.table.return_value
        table.insert.return_value.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(RuntimeError):
            store_document(uuid4(), "brd", {"executiveSummary": "..."})

        table.update.assert_not_called()


class TestCreateConflict:
    def test_rejects_single_requirement(self, mock_supabase):
        from app.db.conflicts import create_conflict

        with pytest.raises(ValueError, match="at least two"):
            create_conflict(
                uuid4(),
                conflict_id="CON-001",
                title="Saved cards need an account",
                description="",
                severity="major",
                requirement_ids=["req-1"],
            )

        mock_supabase.table.assert_not_called()


class TestClearExtractionData:
    def test_returns_deleted_counts(self, mock_supabase):
        from app.db.projects import clear_extraction_data

        project_id = uuid4()
        counts = {"requirements": 3, "trace_links": 9}
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data=counts)

        assert clear_extraction_data(project_id) == counts
        mock_supabase.rpc.assert_called_once_with(
            "clear_extraction_data", {"p_project_id": str(project_id)}
        )
