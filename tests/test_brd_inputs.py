"""Tests for BRD input aggregation and pipeline diagnostics."""

from app.core.brd_inputs import (
    average_confidence,
    breakdown,
    build_brd_inputs,
    confidence_buckets,
)
from app.core.pipeline_diagnostics import run_duration_seconds, summarize_pipeline_health

SOURCES = [
    {"id": "s1", "name": "kickoff.txt", "kind": "meeting_transcript", "content": "one two three", "status": "extracted"},
    {"id": "s2", "name": "thread.eml", "kind": "email", "content": "x" * 500, "status": "pending"},
    {"id": "s3", "name": "notes.txt", "kind": "meeting_transcript", "content": "four", "status": "classified"},
]

REQUIREMENTS = [
    {"requirement_id": "REQ-001", "title": "Guest checkout", "category": "functional", "priority": "high", "confidence_score": 0.9, "source_excerpt": "y" * 50},
    {"requirement_id": "REQ-002", "title": "PCI scope", "category": "compliance", "priority": "critical", "confidence_score": 0.6},
    {"requirement_id": "REQ-003", "title": "Fast pages", "category": "functional", "priority": "high", "confidence_score": 0.3},
]


def test_breakdown_keeps_first_seen_order():
    assert breakdown(["functional", "compliance", "functional"]) == "functional: 2, compliance: 1"


def test_confidence_buckets_and_average():
    assert confidence_buckets(REQUIREMENTS) == (1, 1, 1)
    assert round(average_confidence(REQUIREMENTS), 2) == 0.6
    assert average_confidence([]) == 0.0


def test_build_brd_inputs_counts_and_channels():
    inputs = build_brd_inputs(
        project={"name": "Checkout Revamp", "description": "Rebuild checkout"},
        sources=SOURCES,
        requirements=REQUIREMENTS,
        stakeholders=[{"name": "Maria", "role": "PM", "influence": "decision_maker"}],
        decisions=[],
        conflicts=[],
        timeline_events=[{"type": "deadline", "title": "Go-live", "date": "2026-03-01"}],
    )

    assert inputs.project_name == "Checkout Revamp"
    assert inputs.channels == ["meeting_transcript", "email"]
    assert inputs.requirement_count == 3
    assert inputs.category_breakdown == "functional: 2, compliance: 1"
    assert "REQ-002 [compliance/critical]" in inputs.requirements_block
    assert "Maria (PM)" in inputs.stakeholders_block
    assert "[deadline] Go-live (2026-03-01)" in inputs.timeline_block
    assert inputs.generated_from == {
        "requirement_count": 3,
        "source_count": 3,
        "stakeholder_count": 1,
        "decision_count": 0,
    }


def test_build_brd_inputs_caps_quoted_text():
    inputs = build_brd_inputs(
        project=None,
        sources=SOURCES,
        requirements=REQUIREMENTS[:1],
        stakeholders=[],
        decisions=[],
        conflicts=[],
        timeline_events=[],
        excerpt_max_chars=10,
        snippet_max_chars=100,
        context_max_chars=150,
    )

    assert inputs.project_name == "TraceLayer Project"
    assert '"' + "y" * 10 + '"' in inputs.requirements_block
    assert "y" * 11 not in inputs.requirements_block
    assert len(inputs.source_context_block) == 150


def test_run_duration_seconds():
    run = {"started_at": "2026-01-01T10:00:00Z", "completed_at": "2026-01-01T10:01:30+00:00"}

    assert run_duration_seconds(run) == 90.0
    assert run_duration_seconds({"started_at": "2026-01-01T10:00:00Z"}) is None
    assert run_duration_seconds({"started_at": "garbage", "completed_at": "garbage"}) is None


def test_summarize_pipeline_health():
    runs = [
        {"id": "r2", "status": "failed", "started_at": "2026-01-02T10:00:00Z", "completed_at": "2026-01-02T10:00:05Z"},
        {"id": "r1", "status": "completed", "started_at": "2026-01-01T10:00:00Z", "completed_at": "2026-01-01T10:02:00Z"},
    ]
    logs = [
        {"level": "processing", "agent": "orchestrator", "message": "start"},
        {"level": "warning", "agent": "conflict_agent", "message": "discarded"},
    ] + [
        {"level": "error", "agent": "decision_agent", "message": f"boom {i}", "created_at": f"t{i}"}
        for i in range(7)
    ]

    diagnostics = summarize_pipeline_health(
        project={"name": "Checkout Revamp", "status": "draft", "progress": 0},
        sources=SOURCES,
        requirements=REQUIREMENTS,
        stakeholders=[],
        decisions=[],
        conflicts=[],
        timeline_events=[],
        documents=[{"id": "d1"}],
        runs=runs,
        latest_run_logs=logs,
    )

    assert diagnostics.project["name"] == "Checkout Revamp"
    assert diagnostics.sources == {
        "total": 3,
        "pending": 1,
        "classified": 1,
        "extracted": 1,
        "total_words": 5,
    }
    assert diagnostics.extraction["requirements"] == 3
    assert diagnostics.extraction["documents"] == 1
    assert diagnostics.quality["high_confidence"] == 1
    assert diagnostics.quality["low_confidence"] == 1
    assert diagnostics.runs["completed"] == 1
    assert diagnostics.runs["failed"] == 1
    assert diagnostics.runs["avg_duration_sec"] == 120
    assert diagnostics.runs["latest_run"]["id"] == "r2"
    assert diagnostics.errors["count"] == 7
    assert diagnostics.errors["warnings"] == 1
    assert len(diagnostics.errors["recent_errors"]) == 5
    assert diagnostics.errors["recent_errors"][0]["agent"] == "decision_agent"


def test_summarize_pipeline_health_for_missing_project():
    diagnostics = summarize_pipeline_health(
        project=None,
        sources=[],
        requirements=[],
        stakeholders=[],
        decisions=[],
        conflicts=[],
        timeline_events=[],
        documents=[],
        runs=[],
        latest_run_logs=[],
    )

    assert diagnostics.project is None
    assert diagnostics.runs["latest_run"] is None
    assert diagnostics.quality["avg_confidence"] == 0.0
