"""Lightweight CLI helpers for inspecting and preparing the portal database."""
from __future__ import annotations

import argparse
import sqlite3
from typing import Optional, Sequence

from config.settings import settings
from services.aggregation import aggregate_position
from storage.migrate import migrate
from storage.seed import seed_database


def tail_sessions(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT id, candidate_id, position_id, is_mock, status, started_at, completed_at
            FROM interview_sessions
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            session_id, candidate_id, position_id, is_mock, status, started_at, completed_at = row
            kind = "mock" if is_mock else "real"
            print(
                f"[{started_at}] session={session_id} {candidate_id}@{position_id} {kind} {status} done={completed_at or '-'}"
            )
    finally:
        conn.close()


def tail_answers(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT ua.answered_at, ua.session_id, ua.candidate_id, ua.question_id, ua.answer_id, a.is_correct
            FROM user_answers ua
            LEFT JOIN answers a ON a.id = ua.answer_id
            ORDER BY ua.id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, session_id, candidate_id, question_id, answer_id, is_correct = row
            print(
                f"[{ts}] session={session_id} {candidate_id} q={question_id} a={answer_id} correct={bool(is_correct)}"
            )
    finally:
        conn.close()


def print_results(position_id: int) -> None:
    results = aggregate_position(position_id)
    print(f"{results.position_name} ({len(results.candidates)} candidates)")
    for rank, candidate in enumerate(results.candidates, start=1):
        final = "-" if candidate.final_score is None else candidate.final_score
        print(
            f"{rank:>3}. {candidate.candidate_name} <{candidate.candidate_email}> "
            f"{candidate.total_correct}/{candidate.total_questions} ({candidate.total_percentage:.1f}%) final={final}"
        )
    for failure in results.failures:
        print(f"  skipped {failure.candidate_id}: {failure.reason}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--migrate", action="store_true", help="Create missing tables")
    parser.add_argument("--seed", nargs="?", const=settings.SEED_PATH, help="Load a YAML seed file")
    parser.add_argument("--tail-sessions", type=int, help="Show the latest interview sessions")
    parser.add_argument("--tail-answers", type=int, help="Show the latest stored answers")
    parser.add_argument("--results", type=int, metavar="POSITION_ID", help="Print ranked results for a position")
    args = parser.parse_args(argv)

    if args.migrate:
        migrate(settings.DB_PATH)
    if args.seed:
        report = seed_database(args.seed)
        print(
            f"seeded users={report.users} topics={report.topics} "
            f"questions={report.questions} positions={report.positions}"
        )
    if args.tail_sessions:
        tail_sessions(args.tail_sessions)
    if args.tail_answers:
        tail_answers(args.tail_answers)
    if args.results:
        print_results(args.results)


if __name__ == "__main__":
    main()
