"""Run the extraction pipeline for a project from the command line.

Runs every stage against the project's sources, then prints the run log
and the final counters.

Usage:
    uv run python scripts/run_pipeline.py <project_id> \
        [--regenerate] [--provider openai|anthropic|gemini] [--dump <path>]

Examples:
    # Fresh extraction, dump the run result and log to JSON
    uv run python scripts/run_pipeline.py 634647e8-a22a-4b6f-b42a-452659620bc4 \
        --regenerate --dump /tmp/run-001.json
"""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from pathlib import Path

# Ensure app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def run_pipeline(
    project_id: str,
    regenerate: bool,
    provider: str | None,
    dump_path: str | None,
) -> int:
    from app.core.exceptions import PipelineError
    from app.db.agent_logs import list_logs_for_run
    from app.db.pipeline_runs import get_latest_run
    from app.graphs.extraction_pipeline_graph import run_extraction_pipeline

    project_uuid = uuid.UUID(project_id)

    print(f"\n{'='*60}")
    print(f"Running extraction pipeline for project {project_id}...")
    print(f"  Regenerate: {regenerate}")
    print(f"  Provider: {provider or 'default'}")

    try:
        result = run_extraction_pipeline(
            project_uuid, regenerate=regenerate, preferred_provider=provider
        )
    except PipelineError as e:
        print(f"\nERROR: {e}")
        run = get_latest_run(project_uuid)
        if run:
            _print_log(list_logs_for_run(run["id"]))
        return 1

    logs = list_logs_for_run(result.run_id)
    _print_log(logs)

    print(f"\n--- Result ---")
    print(f"  Run: {result.run_id}")
    print(f"  Status: {result.status}")
    for name, value in result.counters.model_dump().items():
        print(f"  {name}: {value}")
    print(f"  trace_links_created: {result.trace_links_created}")

    if dump_path:
        path = Path(dump_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"result": result.model_dump(mode="json"), "logs": logs}
        path.write_text(json.dumps(payload, indent=2, default=str))
        print(f"\nDumped run to {path}")

    print(f"\n{'='*60}")
    return 0 if result.status == "completed" else 1


def _print_log(logs: list[dict]) -> None:
    print(f"\n--- Run log ({len(logs)} entries) ---")
    for entry in logs:
        print(f"  [{entry.get('level')}] {entry.get('agent')}: {entry.get('message')}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the extraction pipeline for a project."
    )
    parser.add_argument("project_id", help="Project UUID")
    parser.add_argument(
        "--regenerate", action="store_true", help="Clear extracted entities before the run"
    )
    parser.add_argument(
        "--provider",
        choices=["openai", "anthropic", "gemini"],
        help="Preferred text-generation provider",
    )
    parser.add_argument("--dump", metavar="PATH", help="Dump run result and log as JSON to file")

    args = parser.parse_args()

    sys.exit(run_pipeline(
        project_id=args.project_id,
        regenerate=args.regenerate,
        provider=args.provider,
        dump_path=args.dump,
    ))


if __name__ == "__main__":
    main()
