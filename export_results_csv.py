#!/usr/bin/env python3
"""Coin toss result CSV export script

Writes one CSV per session (id, nickname, heads, tails, sequence, created_at)
and prints the aggregate of each exported session.

Usage examples:
  python export_results_csv.py --session-id <UUID>   # one session
  python export_results_csv.py --latest              # most recent session
  python export_results_csv.py --all                 # every session
"""

from __future__ import annotations

import argparse
import os
from typing import List

from cointoss.models import Session
from cointoss.repository import SessionRepository, StoreError
from cointoss.services.aggregation import AggregateView
from cointoss.utils.export import export_filename, results_to_csv


DEFAULT_DB_PATH = os.path.join('data', 'cointoss.db')
DEFAULT_EXPORT_DIR = os.path.join('data', 'exports')


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Export coin toss results to CSV')
    parser.add_argument('--db', default=DEFAULT_DB_PATH, help='SQLite DB file path')
    parser.add_argument('--outdir', default=DEFAULT_EXPORT_DIR, help='CSV output directory')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--session-id', help='Session id (UUID) to export')
    group.add_argument('--latest', action='store_true', help='Export only the most recent session')
    group.add_argument('--all', action='store_true', help='Export every session')
    return parser.parse_args(argv)


def select_sessions(repo: SessionRepository, args: argparse.Namespace) -> List[Session]:
    if args.session_id:
        found = repo.get_session_by_id(args.session_id)
        return [found] if found else []
    sessions = repo.list_sessions()
    if args.all:
        return sessions
    return sessions[:1]


def export_session(repo: SessionRepository, found: Session, outdir: str) -> str:
    results = repo.list_results_for_session(found.id)
    path = os.path.join(outdir, export_filename(found.id))
    with open(path, 'w', newline='', encoding='utf-8-sig') as csvfile:
        csvfile.write(results_to_csv(results))

    view = AggregateView.from_results(results)
    p_value = 'n/a' if view.p_value is None else f"{view.p_value:.4f}"
    status = 'open' if found.is_open else 'closed'
    print(f"✅ {found.id} ({status}): {view.participant_count} participants, "
          f"{view.total_heads}/{view.total_trials} heads, p = {p_value} -> {path}")
    return path


def main(argv=None) -> int:
    args = parse_args(argv)
    if not os.path.exists(args.db):
        raise SystemExit(f"❌ Database file not found: {args.db}")

    repo = SessionRepository(args.db)
    try:
        sessions = select_sessions(repo, args)
        if not sessions:
            if args.session_id:
                print(f"⚠️ No session with id {args.session_id}")
            else:
                print('⚠️ No sessions stored yet')
            return 1

        os.makedirs(args.outdir, exist_ok=True)
        for found in sessions:
            export_session(repo, found, args.outdir)
    except StoreError as exc:
        raise SystemExit(f"❌ Database error: {exc}") from exc
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
