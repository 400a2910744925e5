import pytest

import services.aggregation as aggregation
from services.errors import ErrorKind, NotFoundError
from services.results import record_final_result
from services.scoring import submit_answers
from services.selector import select_questions
from services.sessions import start_session
from storage.sqlite import get_conn


def _complete(candidate_id, position_id, correct, kv, answer_key, *, mock=False, limit=10):
    session = start_session(candidate_id, position_id, mock=mock)
    ids = select_questions(session.id, kv, limit=limit).question_ids
    key = answer_key(ids)
    answers = {qid: key[qid][0] if index < correct else key[qid][1] for index, qid in enumerate(ids)}
    submit_answers(session.id, answers, kv)
    return session


def test_ranking_orders_by_total_percentage(make_candidate, make_position, answer_key, kv):
    position_id = make_position(question_count=10)
    for candidate_id, correct in (("a", 9), ("b", 4), ("c", 7)):
        make_candidate(candidate_id, first=candidate_id.upper(), last="Tester")
        _complete(candidate_id, position_id, correct, kv, answer_key)

    results = aggregation.aggregate_position(position_id)

    assert [c.candidate_id for c in results.candidates] == ["a", "c", "b"]
    assert [c.total_percentage for c in results.candidates] == pytest.approx([90.0, 70.0, 40.0])
    assert results.failures == []


def test_ties_keep_first_completion_order(make_candidate, make_position, answer_key, kv):
    position_id = make_position(question_count=10)
    for candidate_id in ("first", "second", "third"):
        make_candidate(candidate_id)
        _complete(candidate_id, position_id, 5, kv, answer_key)

    results = aggregation.aggregate_position(position_id)

    assert [c.candidate_id for c in results.candidates] == ["first", "second", "third"]


def test_topic_breakdown_and_zero_division(make_candidate, make_position, answer_key, kv):
    position_id = make_position(question_count=4, topics=2)
    make_candidate()
    # Only the first topic is drawn, so the second topic has nothing answered
    session = start_session("c1", position_id, mock=False)
    with get_conn() as conn:
        first_topic_ids = [
            row["id"]
            for row in conn.execute("SELECT id FROM questions WHERE topic_id = ? ORDER BY id", (session.topic_id,))
        ]
    kv.set(f"interview_questions:{session.id}", first_topic_ids)
    key = answer_key(first_topic_ids)
    submit_answers(session.id, {first_topic_ids[0]: key[first_topic_ids[0]][0], first_topic_ids[1]: key[first_topic_ids[1]][1]}, kv)

    results = aggregation.aggregate_position(position_id)

    (candidate,) = results.candidates
    first, second = candidate.topic_results
    assert (first.questions_correct, first.total_questions) == (1, 2)
    assert first.percentage_correct == pytest.approx(50.0)
    assert (second.questions_correct, second.total_questions, second.percentage_correct) == (0, 0, 0.0)
    assert candidate.total_percentage == pytest.approx(50.0)


def test_answers_accumulate_across_sessions(make_candidate, make_position, answer_key, kv):
    position_id = make_position(question_count=10)
    make_candidate()
    _complete("c1", position_id, 10, kv, answer_key, limit=5)
    _complete("c1", position_id, 0, kv, answer_key, limit=5)

    (candidate,) = aggregation.aggregate_position(position_id).candidates

    assert (candidate.total_correct, candidate.total_questions) == (5, 10)


def test_mock_and_unfinished_sessions_are_excluded(make_candidate, make_position, answer_key, kv):
    position_id = make_position(question_count=10)
    make_candidate("mocker")
    make_candidate("idle")
    _complete("mocker", position_id, 8, kv, answer_key, mock=True)
    start_session("idle", position_id, mock=False)

    assert aggregation.aggregate_position(position_id).candidates == []


def test_final_result_is_attached(make_candidate, make_position, answer_key, kv):
    position_id = make_position(question_count=10)
    make_candidate()
    session = _complete("c1", position_id, 6, kv, answer_key)
    record_final_result(session.id, 80, "Solid fundamentals")

    (candidate,) = aggregation.aggregate_position(position_id).candidates

    assert candidate.final_score == 80
    assert candidate.feedback == "Solid fundamentals"
    assert candidate.candidate_name == "Ada Lovelace"
    assert candidate.candidate_email == "c1@example.com"


def test_absent_final_result_is_none(make_candidate, make_position, answer_key, kv):
    position_id = make_position(question_count=10)
    make_candidate()
    _complete("c1", position_id, 6, kv, answer_key)

    (candidate,) = aggregation.aggregate_position(position_id).candidates

    assert candidate.final_score is None
    assert candidate.feedback is None


def test_failing_candidate_is_skipped(make_candidate, make_position, answer_key, kv, monkeypatch):
    position_id = make_position(question_count=10)
    for candidate_id in ("ok", "broken"):
        make_candidate(candidate_id)
        _complete(candidate_id, position_id, 5, kv, answer_key)

    original = aggregation.fetch_candidate

    def flaky(conn, candidate_id):
        return None if candidate_id == "broken" else original(conn, candidate_id)

    monkeypatch.setattr(aggregation, "fetch_candidate", flaky)

    results = aggregation.aggregate_position(position_id)

    assert [c.candidate_id for c in results.candidates] == ["ok"]
    assert [(f.candidate_id, f.kind) for f in results.failures] == [("broken", ErrorKind.NOT_FOUND)]


def test_database_error_for_one_candidate_is_isolated(make_candidate, make_position, answer_key, kv, monkeypatch):
    position_id = make_position(question_count=10)
    for candidate_id in ("ok", "broken"):
        make_candidate(candidate_id)
        _complete(candidate_id, position_id, 5, kv, answer_key)

    original = aggregation.scored_answers_for

    def flaky(conn, candidate_id, pid):
        if candidate_id == "broken":
            raise aggregation.sqlite3.OperationalError("database is locked")
        return original(conn, candidate_id, pid)

    monkeypatch.setattr(aggregation, "scored_answers_for", flaky)

    results = aggregation.aggregate_position(position_id)

    assert [c.candidate_id for c in results.candidates] == ["ok"]
    assert results.failures[0].kind == ErrorKind.PERSISTENCE_FAILED


def test_aggregation_is_idempotent(make_candidate, make_position, answer_key, kv):
    position_id = make_position(question_count=10)
    for candidate_id, correct in (("a", 3), ("b", 8)):
        make_candidate(candidate_id)
        _complete(candidate_id, position_id, correct, kv, answer_key)

    assert aggregation.aggregate_position(position_id) == aggregation.aggregate_position(position_id)


def test_unknown_position_is_not_found():
    with pytest.raises(NotFoundError):
        aggregation.aggregate_position(999)
