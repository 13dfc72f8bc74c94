"""
Evaluate a directory of portfolios from the command line.

Usage:
    portfolioq-evaluate PORTFOLIOS_DIR [--db PATH] [--concurrency N] [--retry-pending]

PORTFOLIOS_DIR is treated like a directory picked in the browser: paths
are taken relative to its parent, so "Portfolios/Ahmed/plan.pdf" groups
under "Ahmed".
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from portfolioq.config import ANALYSIS_CONCURRENCY
from portfolioq.evaluation.grouping import UploadEntry
from portfolioq.evaluation.models import PathEvidenceFile, SubjectStatus
from portfolioq.evaluation.service import EvaluationService
from portfolioq.infrastructure.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SqliteKeyValueStore,
)


def collect_entries(root: Path) -> list[UploadEntry]:
    """Every file under root, with paths relative to root's parent, in sorted order."""
    base = root.parent
    return [
        UploadEntry(relative_path=path.relative_to(base).as_posix(), file=PathEvidenceFile(path))
        for path in sorted(root.rglob("*"))
        if path.is_file() and not path.name.startswith(".")
    ]


def print_results(service: EvaluationService) -> None:
    subjects = service.subjects()
    print("\n" + "=" * 72)
    print("PORTFOLIO EVALUATION")
    print("=" * 72)
    print(f"\n{'Subject':<36} {'Status':<12} {'Files':>6} {'Total':>8}")
    print("-" * 72)
    for s in subjects:
        total = f"{s.total_score}/100" if s.total_score is not None else "-"
        print(f"{s.name[:36]:<36} {s.status.value:<12} {len(s.files):>6} {total:>8}")

    summary = service.summary()
    if summary.completed_count:
        print("-" * 72)
        print(f"Average total: {summary.average_total}/100")
        print(f"Top performer: {summary.top_subject_name} ({summary.top_total}/100)")
    print()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Evaluate portfolio folders with Gemini")
    parser.add_argument("directory", type=Path, help="Directory holding one folder per subject")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite state file; subjects persist and merge across runs (default: in-memory)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=ANALYSIS_CONCURRENCY,
        help=f"Maximum subjects analyzed at once (default: {ANALYSIS_CONCURRENCY})",
    )
    parser.add_argument(
        "--retry-pending",
        action="store_true",
        help="Also analyze known subjects left pending by an earlier halted run (needs --db)",
    )
    args = parser.parse_args(argv)

    load_dotenv()

    if not args.directory.is_dir():
        parser.error(f"not a directory: {args.directory}")
    if args.concurrency < 1:
        parser.error("--concurrency must be at least 1")

    kv: KeyValueStore = SqliteKeyValueStore(args.db) if args.db else InMemoryKeyValueStore()
    service = EvaluationService(kv, max_concurrency=args.concurrency)

    entries = collect_entries(args.directory.resolve())
    if not entries:
        print(f"No files found under {args.directory}")
        return 1

    if args.retry_pending:
        service.ingest_upload(entries)
        summary = service.retry_pending()
    else:
        summary = service.process_upload(entries)
    print_results(service)
    print(
        f"Processed {summary.processed}/{summary.total}: {summary.completed} completed, "
        f"{summary.errors} failed"
    )

    if summary.halted:
        pending = service.store.count_by_status(SubjectStatus.PENDING)
        print(
            f"Stopped: Gemini API key missing or invalid. {pending} subjects still pending. "
            "Set GOOGLE_API_KEY and run again.",
            file=sys.stderr,
        )
        return 2
    return 0 if summary.errors == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
