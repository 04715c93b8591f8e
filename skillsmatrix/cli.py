"""Command-line entry point for the content pipeline and its reports.

Usage:
    # Fill steps for skills that have none, from the first 10 documents
    python -m skillsmatrix.cli extract-steps --start 0 --stop 10

    # See what would be matched without writing anything
    python -m skillsmatrix.cli extract-steps --dry-run --all-skills

    # Generate quiz questions for every skill with steps
    python -m skillsmatrix.cli generate-questions

    # Reports
    python -m skillsmatrix.cli progress
    python -m skillsmatrix.cli quality
    python -m skillsmatrix.cli audit
    python -m skillsmatrix.cli critical
    python -m skillsmatrix.cli monitor --interval 30

    # Maintenance
    python -m skillsmatrix.cli fix-numbering
    python -m skillsmatrix.cli map-subjects --output data/subject-mapping.json
    python -m skillsmatrix.cli sync-subjects
    python -m skillsmatrix.cli init-db

Exit status is 0 on success and 1 on an unexpected error.
"""

import argparse
import asyncio
import logging
import sys
from typing import Callable, List, Optional

from skillsmatrix.config import settings
from skillsmatrix.database import AsyncSessionLocal, close_db, init_db
from skillsmatrix.services.pipeline import ExtractionPipeline, RunSummary
from skillsmatrix.services.reports import (
    build_audit_report,
    build_critical_report,
    build_progress_report,
    build_quality_summary,
    load_skills,
    render_audit,
    render_critical,
    render_progress,
    render_quality,
    run_monitor,
)
from skillsmatrix.services.step_numbering import StepNumberingRepair
from skillsmatrix.services.subject_mapping import (
    build_subject_mapping,
    render_subject_mapping,
    sync_subjects,
)

logger = logging.getLogger("skillsmatrix.cli")


def _print_lines(lines: List[str]) -> None:
    for line in lines:
        print(line)


def _print_summary(summary: RunSummary) -> None:
    print(summary.message)
    if summary.matched:
        print("Filled:")
        for name in summary.matched:
            print(f"  - {name}")
    if summary.errors:
        print("Errors:")
        for err in summary.errors:
            print(f"  - {err}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def cmd_extract_steps(args: argparse.Namespace) -> int:
    pipeline = ExtractionPipeline(documents_dir=args.documents_dir, delay_ms=args.delay_ms)
    summary = await pipeline.run_steps(
        start=args.start,
        stop=args.stop,
        only_unfilled=not args.all_skills,
        dry_run=args.dry_run,
    )
    _print_summary(summary)
    return 0


async def cmd_generate_questions(args: argparse.Namespace) -> int:
    pipeline = ExtractionPipeline(documents_dir=args.documents_dir, delay_ms=args.delay_ms)
    summary = await pipeline.run_questions(
        only_with_steps=not args.all_skills,
        dry_run=args.dry_run,
    )
    _print_summary(summary)
    return 0


async def cmd_fix_numbering(args: argparse.Namespace) -> int:
    async with AsyncSessionLocal() as db:
        summary = await StepNumberingRepair().run(db, dry_run=args.dry_run)
    print(
        f"Checked {summary.skills_checked} skill(s), fixed {summary.skills_fixed}, "
        f"renumbered {summary.steps_renumbered} step(s)"
        + (" [dry run]" if args.dry_run else "")
    )
    for name in summary.fixed_skill_names:
        print(f"  - {name}")
    return 0


def _report_command(build: Callable, render: Callable) -> Callable:
    async def _run(args: argparse.Namespace) -> int:
        async with AsyncSessionLocal() as db:
            skills = await load_skills(db)
        _print_lines(render(build(skills)))
        return 0

    return _run


async def cmd_quality(args: argparse.Namespace) -> int:
    async with AsyncSessionLocal() as db:
        skills = await load_skills(db)
    _print_lines(render_quality(build_quality_summary(skills, only_with_steps=not args.all_skills)))
    return 0


async def cmd_monitor(args: argparse.Namespace) -> int:
    await run_monitor(AsyncSessionLocal, interval=args.interval, iterations=args.iterations)
    return 0


async def cmd_map_subjects(args: argparse.Namespace) -> int:
    async with AsyncSessionLocal() as db:
        skills = await load_skills(db)
    report = build_subject_mapping(skills)
    _print_lines(render_subject_mapping(report))
    if args.output:
        report.write_json(args.output)
    return 0


async def cmd_sync_subjects(args: argparse.Namespace) -> int:
    async with AsyncSessionLocal() as db:
        summary = await sync_subjects(db)
    print(
        f"Subjects: {summary.subjects_created} created, {summary.subjects_updated} updated; "
        f"links: {summary.links_created} added, {summary.links_existing} already present"
    )
    return 0


async def cmd_init_db(args: argparse.Namespace) -> int:
    await init_db()
    print("Database tables created/verified")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillsmatrix",
        description="Paramedic skills content pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("extract-steps", help="Extract skill steps from documents")
    p.add_argument("--documents-dir", default=None, help=f"Default: {settings.DOCUMENTS_DIR}")
    p.add_argument("--start", type=int, default=None, help="First document index (sorted by name)")
    p.add_argument("--stop", type=int, default=None, help="Stop before this document index")
    p.add_argument("--all-skills", action="store_true", help="Also match skills that already have steps")
    p.add_argument("--dry-run", action="store_true", help="Extract and match without writing")
    p.add_argument("--delay-ms", type=int, default=None, help="Pause between LLM calls")
    p.set_defaults(func=cmd_extract_steps)

    p = sub.add_parser("generate-questions", help="Generate quiz questions per skill")
    p.add_argument("--documents-dir", default=None)
    p.add_argument("--all-skills", action="store_true", help="Include skills without steps")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--delay-ms", type=int, default=None)
    p.set_defaults(func=cmd_generate_questions)

    p = sub.add_parser("fix-numbering", help="Renumber steps 1..n in insertion order")
    p.add_argument("--dry-run", action="store_true")
    p.set_defaults(func=cmd_fix_numbering)

    p = sub.add_parser("progress", help="Step and quiz coverage report")
    p.set_defaults(func=_report_command(build_progress_report, render_progress))

    p = sub.add_parser("audit", help="Skills without steps and incomplete steps")
    p.set_defaults(func=_report_command(build_audit_report, render_audit))

    p = sub.add_parser("critical", help="Critical skill coverage")
    p.set_defaults(func=_report_command(build_critical_report, render_critical))

    p = sub.add_parser("quality", help="Quality scores per skill")
    p.add_argument("--all-skills", action="store_true", help="Include skills without steps")
    p.set_defaults(func=cmd_quality)

    p = sub.add_parser("monitor", help="Print coverage periodically")
    p.add_argument("--interval", type=float, default=None,
                   help=f"Seconds between snapshots (default {settings.MONITOR_INTERVAL_SECONDS})")
    p.add_argument("--iterations", type=int, default=None, help="Stop after N snapshots")
    p.set_defaults(func=cmd_monitor)

    p = sub.add_parser("map-subjects", help="Map HEM subject skills to stored skills")
    p.add_argument("--output", default=None, help="Write the mapping as JSON to this file")
    p.set_defaults(func=cmd_map_subjects)

    p = sub.add_parser("sync-subjects", help="Upsert subjects and link matched skills")
    p.set_defaults(func=cmd_sync_subjects)

    p = sub.add_parser("init-db", help="Create database tables")
    p.set_defaults(func=cmd_init_db)

    return parser


async def _run(args: argparse.Namespace) -> int:
    try:
        return await args.func(args)
    finally:
        await close_db()


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        code = asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(0)
    except Exception as exc:
        logger.error("%s failed: %s", args.command, exc, exc_info=True)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
