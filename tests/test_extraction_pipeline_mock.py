"""Tests for the extraction pipeline graph with an in-memory database and scripted generator."""

import threading

import pytest

import app.graphs.extraction_pipeline_graph as pipeline_graph
import app.services.pipeline_status as pipeline_status
from app.core.exceptions import (
    GenerationServiceError,
    NoSourcesFound,
    ResponseParseError,
    RunAlreadyInProgress,
)
from app.core.schemas_pipeline import ACTIVE_RUN_STATUSES
from app.core.traceability import link_key
from app.graphs.extraction_pipeline_graph import PROGRESS, run_extraction_pipeline
from tests.fakes.fake_llm import DEFAULT_RESPONSES, FakeGenerator

OPENING = "Maria: guest checkout is a must for launch.\n"
CLOSING = "Maria: saved cards would cut repeat purchase time.\n"

GUEST_CHECKOUT = {
    "title": "Guest checkout",
    "description": "Shoppers can buy without creating an account.",
    "category": "functional",
    "priority": "critical",
    "confidence": 0.95,
    "source_excerpt": OPENING.strip(),
    "reasoning": "Stated as a launch must-have",
}
RESPONSIVE_LAYOUT = {
    "title": "Responsive checkout layout",
    "category": "non_functional",
    "confidence": 0.7,
    "source_excerpt": "Team discussed layout options at length.",
}
SAVED_CARDS = {
    "title": "Saved payment cards",
    "category": "functional",
    "priority": "high",
    "confidence": 0.85,
    "source_excerpt": CLOSING.strip(),
}


def long_transcript() -> str:
    """A 40,000-char transcript that names Maria twice."""
    body = OPENING + "Team discussed layout options at length. " * 1000
    return body[: 40_000 - len(CLOSING)] + CLOSING


def requirements_by_window(prompt: str) -> dict:
    """Both windows see the boundary requirement."""
    if "(chunk 1/2)" in prompt:
        return {"requirements": [GUEST_CHECKOUT, RESPONSIVE_LAYOUT]}
    return {"requirements": [RESPONSIVE_LAYOUT, SAVED_CARDS]}


def scenario_responses(**overrides) -> dict:
    responses = {
        "requirements": requirements_by_window,
        "stakeholders": {
            "stakeholders": [
                {"name": "Maria", "role": "Product Owner", "influence": "decision_maker"}
            ]
        },
        "decisions": {
            "decisions": [
                {
                    "title": "Launch guest checkout first",
                    "type": "scope",
                    "status": "approved",
                    "made_by": "Maria",
                    "source_excerpt": OPENING.strip(),
                    "confidence": 0.8,
                }
            ]
        },
        "timeline": {
            "events": [
                {
                    "title": "Go-live",
                    "date": "2026-03-01",
                    "type": "deadline",
                    "source_excerpt": "quoted from nowhere in particular",
                }
            ]
        },
    }
    responses.update(overrides)
    return responses


@pytest.fixture
def use_generator(monkeypatch, fake_db):
    """Install the fake database and return a helper that installs a generator."""
    fake_db.install(monkeypatch, pipeline_graph, pipeline_status)

    def install(generator: FakeGenerator) -> FakeGenerator:
        monkeypatch.setattr(
            pipeline_graph,
            "get_text_generator",
            lambda preferred_provider=None: generator,
        )
        return generator

    return install


@pytest.fixture
def project_id(fake_db):
    project_id = fake_db.add_project()
    fake_db.add_source(project_id, long_transcript())
    return project_id


def _links(fake_db, relationship: str) -> list[dict]:
    return [link for link in fake_db.trace_links if link["relationship"] == relationship]


class TestCompletedRun:
    def test_chunked_source_yields_each_requirement_once(self, fake_db, use_generator, project_id):
        """Test that boundary text seen by both windows is persisted once."""
        generator = use_generator(FakeGenerator(scenario_responses()))

        result = run_extraction_pipeline(project_id)

        assert result.status == "completed"
        assert len(generator.prompts("requirements")) == 2
        assert [r["requirement_id"] for r in fake_db.requirements] == ["REQ-001", "REQ-002", "REQ-003"]
        assert [r["title"] for r in fake_db.requirements] == [
            "Guest checkout",
            "Responsive checkout layout",
            "Saved payment cards",
        ]
        assert result.counters.requirements_found == 3
        assert result.counters.sources_processed == 1

    def test_stakeholder_links_once_per_mentioning_source(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        run_extraction_pipeline(project_id)

        assert len(fake_db.stakeholders) == 1
        stakeholder = fake_db.stakeholders[0]
        source_id = fake_db.sources[0]["id"]
        mentioned = [l for l in _links(fake_db, "mentioned_in") if l["from_type"] == "stakeholder"]
        assert [(l["from_id"], l["to_id"], l["strength"]) for l in mentioned] == [
            (stakeholder["id"], source_id, 0.9)
        ]
        assert stakeholder["source_ids"] == [source_id]

        proposed_by = _links(fake_db, "proposed_by")
        assert {l["to_id"] for l in proposed_by} == {stakeholder["id"]}
        assert len(proposed_by) == 2

    def test_every_entity_is_linked(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        result = run_extraction_pipeline(project_id)

        source_id = fake_db.sources[0]["id"]
        assert len(_links(fake_db, "extracted_from")) == 3
        decided_in = _links(fake_db, "decided_in")
        assert [(l["to_id"], l["strength"]) for l in decided_in] == [(source_id, 0.8)]
        affects = _links(fake_db, "affects")
        assert [l["to_id"] for l in affects] == [fake_db.requirements[0]["id"]]

        event = fake_db.timeline_events[0]
        assert event["source_id"] is None
        timeline_links = [l for l in fake_db.trace_links if l["from_type"] == "timeline"]
        assert [l["to_id"] for l in timeline_links] == [source_id]

        assert result.trace_links_created == len(fake_db.trace_links) == 9

    def test_labels_decision_and_remaps_type(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        run_extraction_pipeline(project_id)

        assert [(d["decision_id"], d["type"]) for d in fake_db.decisions] == [("DEC-001", "business")]
        assert fake_db.decisions[0]["source_id"] == fake_db.sources[0]["id"]

    def test_run_and_project_progress(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        result = run_extraction_pipeline(project_id)

        assert fake_db.run_status_history == [*ACTIVE_RUN_STATUSES[2:], "completed"]
        progress = [p for _, _, p in fake_db.project_updates if p is not None]
        assert progress == list(PROGRESS.values())

        project = fake_db.get_project(project_id)
        assert (project["status"], project["progress"]) == ("active", 100)

        run = fake_db.get_run(result.run_id)
        assert run["status"] == "completed"
        assert run["completed_at"] is not None
        assert run["requirements_found"] == 3
        assert run["stakeholders_found"] == 1
        assert run["decisions_found"] == 1

    def test_sources_are_classified_then_extracted(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        run_extraction_pipeline(project_id)

        source = fake_db.sources[0]
        assert source["status"] == "extracted"
        assert source["relevance_score"] == DEFAULT_RESPONSES["classify"]["relevance"]
        assert source["classification"]["key_topics"] == ["checkout"]

    def test_brd_is_stored_with_generation_counts(self, fake_db, use_generator, project_id):
        generator = use_generator(FakeGenerator(scenario_responses()))

        result = run_extraction_pipeline(project_id)

        document = fake_db.get_latest_document(project_id, "brd")
        assert result.document_id == document["id"]
        assert document["version"] == 1
        assert document["generated_from"]["requirement_count"] == 3
        assert "REQ-003" in generator.prompts("brd")[0]

    def test_logs_trace_the_run(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        result = run_extraction_pipeline(project_id)

        messages = [e["message"] for e in fake_db.list_logs_for_run(result.run_id)]
        assert messages[0] == "Pipeline started"
        assert "split into 2 chunks" in " ".join(messages)
        assert "No conflicts detected between requirements." in messages
        assert messages[-1].startswith("Pipeline complete: 3 requirements")


class TestRerun:
    def test_rerun_adds_no_duplicate_requirements(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        run_extraction_pipeline(project_id)
        second = run_extraction_pipeline(project_id)

        assert second.status == "completed"
        assert second.counters.requirements_found == 0
        assert len(fake_db.requirements) == 3
        assert len(_links(fake_db, "extracted_from")) == 3
        assert "Skipped duplicate" in " ".join(fake_db.messages("info"))

    def test_rerun_never_duplicates_links(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        run_extraction_pipeline(project_id)
        run_extraction_pipeline(project_id)

        keys = [link_key(link) for link in fake_db.trace_links]
        assert len(keys) == len(set(keys))
        # Stakeholders are extracted fresh each run, so each copy gets its own links
        assert len(fake_db.stakeholders) == 2
        assert len(_links(fake_db, "proposed_by")) == 4

    def test_rerun_continues_decision_labels_and_versions_brd(
        self, fake_db, use_generator, project_id
    ):
        use_generator(FakeGenerator(scenario_responses()))

        run_extraction_pipeline(project_id)
        run_extraction_pipeline(project_id)

        assert [d["decision_id"] for d in fake_db.decisions] == ["DEC-001", "DEC-002"]
        documents = fake_db.list_documents(project_id, "brd")
        assert [(d["version"], d["status"]) for d in documents] == [
            (2, "ready"),
            (1, "superseded"),
        ]

    def test_regenerate_clears_previous_extraction(self, fake_db, use_generator, project_id):
        use_generator(FakeGenerator(scenario_responses()))

        run_extraction_pipeline(project_id)
        result = run_extraction_pipeline(project_id, regenerate=True)

        assert result.counters.requirements_found == 3
        assert [r["requirement_id"] for r in fake_db.requirements] == ["REQ-001", "REQ-002", "REQ-003"]
        assert [d["decision_id"] for d in fake_db.decisions] == ["DEC-001"]
        assert len(fake_db.stakeholders) == 1
        ready = [d for d in fake_db.documents if d["status"] == "ready"]
        assert len(ready) == 1
        assert "Regenerating: previous extraction data cleared" in fake_db.messages()


class TestFailures:
    def test_generation_failure_fails_run_and_resets_project(
        self, fake_db, use_generator, project_id
    ):
        use_generator(
            FakeGenerator(
                scenario_responses(decisions=GenerationServiceError("OpenAI", "rate limited"))
            )
        )

        with pytest.raises(GenerationServiceError, match="rate limited"):
            run_extraction_pipeline(project_id)

        run = fake_db.get_latest_run(project_id)
        assert run["status"] == "failed"
        assert "rate limited" in run["error"]
        assert run["completed_at"] is not None

        project = fake_db.get_project(project_id)
        assert (project["status"], project["progress"]) == ("draft", 0)

        # Entities persisted by earlier stages are kept
        assert len(fake_db.requirements) == 3
        assert fake_db.decisions == []
        assert any(m.startswith("Pipeline failed:") for m in fake_db.messages("error"))

    def test_unparseable_response_fails_run(self, fake_db, use_generator, project_id):
        generator = use_generator(
            FakeGenerator(scenario_responses(stakeholders="I'm sorry, I can't help with that."))
        )

        with pytest.raises(ResponseParseError):
            run_extraction_pipeline(project_id)

        assert fake_db.get_latest_run(project_id)["status"] == "failed"
        assert generator.prompts("decisions") == []

    def test_fenced_requirement_response_is_not_a_failure(self, fake_db, use_generator):
        project_id = fake_db.add_project()
        fake_db.add_source(project_id, "Short kickoff notes.")
        use_generator(
            FakeGenerator(
                {"requirements": 'Sure! Here\'s the JSON:\n```json\n{"requirements":[]}\n```'}
            )
        )

        result = run_extraction_pipeline(project_id)

        assert result.status == "completed"
        assert fake_db.requirements == []
        assert "Not enough requirements for conflict analysis." in fake_db.messages()

    def test_no_sources(self, fake_db, use_generator):
        project_id = fake_db.add_project()
        generator = use_generator(FakeGenerator())

        with pytest.raises(NoSourcesFound):
            run_extraction_pipeline(project_id)

        assert fake_db.get_latest_run(project_id)["status"] == "failed"
        project = fake_db.get_project(project_id)
        assert (project["status"], project["progress"]) == ("draft", 0)
        assert generator.calls == []

    def test_missing_provider_key_creates_no_run(self, fake_db, monkeypatch, project_id):
        fake_db.install(monkeypatch, pipeline_graph)
        monkeypatch.setenv("OPENAI_API_KEY", "")

        with pytest.raises(GenerationServiceError, match="No API key configured"):
            run_extraction_pipeline(project_id)

        assert fake_db.runs == []


class TestExclusivity:
    def test_active_run_blocks_new_run(self, fake_db, use_generator, project_id):
        fake_db.add_run(project_id, "extracting_decisions")
        generator = use_generator(FakeGenerator(scenario_responses()))

        with pytest.raises(RunAlreadyInProgress) as exc_info:
            run_extraction_pipeline(project_id)

        assert exc_info.value.status == "extracting_decisions"
        assert len(fake_db.runs) == 1
        assert generator.calls == []

    def test_concurrent_runs_one_completes(self, fake_db, use_generator, project_id):
        """Test that a second call during a run is rejected and the first completes."""
        started = threading.Event()
        release = threading.Event()

        def slow_classification(prompt: str) -> dict:
            started.set()
            release.wait(timeout=10)
            return DEFAULT_RESPONSES["classify"]

        use_generator(FakeGenerator(scenario_responses(classify=slow_classification)))
        outcome = {}

        def first_run():
            outcome["result"] = run_extraction_pipeline(project_id)

        worker = threading.Thread(target=first_run)
        worker.start()
        try:
            assert started.wait(timeout=10)
            with pytest.raises(RunAlreadyInProgress):
                run_extraction_pipeline(project_id)
        finally:
            release.set()
            worker.join(timeout=30)

        assert outcome["result"].status == "completed"
        assert [r["status"] for r in fake_db.runs] == ["completed"]


class TestCancellation:
    def test_cancel_stops_at_next_stage_boundary(self, fake_db, use_generator, project_id):
        def cancel_during_stakeholders(prompt: str) -> dict:
            pipeline_status.cancel_pipeline(project_id)
            return scenario_responses()["stakeholders"]

        generator = use_generator(
            FakeGenerator(scenario_responses(stakeholders=cancel_during_stakeholders))
        )

        result = run_extraction_pipeline(project_id)

        assert result.status == "cancelled"
        assert fake_db.get_run(result.run_id)["status"] == "cancelled"
        assert generator.prompts("decisions") == []
        assert generator.prompts("brd") == []

        # Work finished before the boundary is kept
        assert len(fake_db.requirements) == 3
        assert len(fake_db.stakeholders) == 1

        project = fake_db.get_project(project_id)
        assert (project["status"], project["progress"]) == ("draft", 0)
        assert "Pipeline cancelled" in fake_db.messages("warning")

    def test_cancelled_project_can_run_again(self, fake_db, use_generator, project_id):
        fake_db.add_run(project_id, "classifying")
        use_generator(FakeGenerator(scenario_responses()))

        pipeline_status.cancel_pipeline(project_id)
        result = run_extraction_pipeline(project_id)

        assert result.status == "completed"


class TestConflicts:
    CONFLICTS = {
        "conflicts": [
            {
                "title": "Unknown requirement",
                "severity": "critical",
                "requirement_ids": ["REQ-001", "REQ-999"],
            },
            {
                "title": "Guest checkout vs saved cards",
                "description": "Saved cards need an account",
                "severity": "major",
                "requirement_ids": ["REQ-001", "REQ-003"],
                "explanation": "Guests have no wallet",
            },
        ]
    }

    def test_conflicts_naming_unknown_requirements_are_discarded(
        self, fake_db, use_generator, project_id
    ):
        use_generator(FakeGenerator(scenario_responses(conflicts=self.CONFLICTS)))

        result = run_extraction_pipeline(project_id)

        assert result.counters.conflicts_found == 1
        assert len(fake_db.conflicts) == 1
        conflict = fake_db.conflicts[0]
        assert conflict["conflict_id"] == "CON-002"
        assert conflict["description"] == "Saved cards need an account | Guests have no wallet"
        assert conflict["requirement_ids"] == [
            fake_db.requirements[0]["id"],
            fake_db.requirements[2]["id"],
        ]
        assert any("Discarded conflict" in m for m in fake_db.messages("warning"))

        blocks = _links(fake_db, "blocks")
        assert [(l["to_id"], l["strength"]) for l in blocks] == [
            (fake_db.requirements[0]["id"], 0.8),
            (fake_db.requirements[2]["id"], 0.8),
        ]

    def test_monotonic_conflict_labels(self, fake_db, use_generator, project_id, monkeypatch):
        monkeypatch.setenv("CONFLICT_ID_STRATEGY", "monotonic")
        use_generator(FakeGenerator(scenario_responses(conflicts=self.CONFLICTS)))

        run_extraction_pipeline(project_id)
        run_extraction_pipeline(project_id)

        assert [c["conflict_id"] for c in fake_db.conflicts] == ["CON-001", "CON-002"]
