"""Command line interface for the seating optimizer."""
from __future__ import annotations

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .csv_loader import load_all
from .errors import InvalidInput
from .models import OptimizeOptions
from .solver import optimize


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Event seating optimizer")
    parser.add_argument("--guests", required=True, help="Path to guests.csv")
    parser.add_argument("--relationships", required=True, help="Path to relationships.csv")
    parser.add_argument("--tables", required=True, help="Path to tables.csv")
    parser.add_argument("--constraints", help="Path to constraints.csv")
    parser.add_argument("--max-passes", type=int, default=OptimizeOptions.max_passes,
                        help="Upper bound on improvement passes.")
    parser.add_argument("--time-budget-ms", type=int, default=OptimizeOptions.time_budget_ms,
                        help="Wall clock budget for the improvement phase.")
    parser.add_argument("--no-time-budget", action="store_true",
                        help="Run the improvement phase without a wall clock limit (fully deterministic).")
    parser.add_argument("--from-scratch", action="store_true",
                        help="Ignore current table assignments when seeding.")
    parser.add_argument("--lock", action="store_true",
                        help="Only apply constraints and fill free seats, no score optimization.")
    parser.add_argument("--auto-drop-conflicts", action="store_true",
                        help="Drop constraints that contradict earlier ones instead of failing.")
    parser.add_argument("--out-assignments", type=Path,
                        help="Write assignments CSV: guest,table,seat,reason.")
    parser.add_argument("--out-report", type=Path,
                        help="Write per-table report CSV with scores and grades.")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log solver progress (-vv for debug output).")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point used by ``python -m seating_optimizer.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        guests, relationships, tables, constraints = load_all(
            args.guests, args.relationships, args.tables, args.constraints
        )
    except InvalidInput as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    options = OptimizeOptions(
        max_passes=args.max_passes,
        time_budget_ms=None if args.no_time_budget else args.time_budget_ms,
        preserve_existing=not args.from_scratch,
        respect_fixed_only=args.lock,
        auto_drop_conflicts=args.auto_drop_conflicts,
    )
    result = optimize(guests, tables, relationships, constraints, options)
    if not result.ok:
        print(f"error: {result.error.kind.value}: {result.error.message}", file=sys.stderr)
        for conflict in result.error.conflicts:
            print(f"  [{conflict.kind.value}] {', '.join(conflict.constraint_ids)}: {conflict.message}",
                  file=sys.stderr)
        return 1

    assignment, diag = result.assignment, result.diagnostics

    # Print simple assignments
    for p in sorted(assignment.placements, key=lambda p: p.guest_id):
        if p.seated:
            print(f"{p.guest_id},{p.table_id},{p.seat_index}")
    for guest_id, reason in sorted(diag.unassigned.items()):
        print(f"[UNASSIGNED] {guest_id} reason={reason.value}")
    for item in diag.unsatisfied_constraints:
        print(f"[UNSATISFIED] {item.constraint_id} reason={item.reason.value}")
    for conflict in diag.dropped_conflicts:
        print(f"[DROPPED] {', '.join(conflict.constraint_ids)}: {conflict.message}")

    if args.out_assignments:
        args.out_assignments.parent.mkdir(parents=True, exist_ok=True)
        with args.out_assignments.open("w", newline="") as f:
            w = csv.writer(f)
            w.writerow(["guest", "table", "seat", "reason"])
            for p in sorted(assignment.placements, key=lambda p: p.guest_id):
                w.writerow([
                    p.guest_id,
                    p.table_id or "",
                    "" if p.seat_index is None else p.seat_index,
                    p.reason.value if p.reason else "",
                ])

    # Print a compact table summary
    for s in diag.table_report:
        print(f"[REPORT] {s['table']} grade={s['grade']} mean={s['mean_score']:.2f} "
              f"seated={s['seated']}/{s['capacity']} "
              f"pairs={s['pair_count']} pos={s['pos_pairs']} neg={s['neg_pairs']} neu={s['neu_pairs']}")
    print(f"[SCORE] before={diag.initial_score} after={diag.score} passes={diag.passes} "
          f"moves={diag.moves_accepted} stop={diag.stop_reason} "
          f"moved={len(diag.moved_guests)} newly_seated={diag.newly_seated}")

    if args.out_report:
        args.out_report.parent.mkdir(parents=True, exist_ok=True)
        with args.out_report.open("w", newline="") as f:
            w = csv.DictWriter(f, fieldnames=[
                "table", "grade", "mean_score", "total_score", "seated", "capacity",
                "pair_count", "pos_pairs", "neg_pairs", "neu_pairs", "members"
            ])
            w.writeheader()
            for s in diag.table_report:
                row = {k: s[k] for k in w.fieldnames}
                row["mean_score"] = f"{s['mean_score']:.4f}"
                w.writerow(row)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
