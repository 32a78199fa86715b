from __future__ import annotations

from datetime import datetime, timezone

from conftest import levels

from quiz_host.core.models import Level, Question, Quiz, Team
from quiz_host.core.services.scoreboard import Scoreboard


def _question(question_id: str, correct: int = 1, level: Level = Level.EASY, team_id: str = "a") -> Question:
    return Question(
        id=question_id,
        text=f"Text {question_id}",
        options=["w", "r", "x", "y"],
        correct_answer=correct,
        level=level,
        team_id=team_id,
    )


def _quiz(teams: list[Team], questions: list[Question], show_answers_at_end: bool = False) -> Quiz:
    return Quiz(
        id="quiz",
        owner_id="owner",
        title="Scores",
        topics=["History", "Science"],
        category_ids=[],
        questions_per_level=levels(2, 1, 0),
        timeouts_in_seconds=levels(10, 10, 10),
        show_answers_at_end=show_answers_at_end,
        created_at=datetime.now(timezone.utc),
        teams=teams,
        questions=questions,
    )


def test_record_answer_scores_only_correct_choices():
    board = Scoreboard()
    team = Team(id="a", name="A")

    board.record_answer(team, _question("q1"), 1)
    board.record_answer(team, _question("q2"), 0)

    assert team.score == 1
    assert [(a.question_id, a.correct, a.selected_option) for a in team.answered_questions] == [
        ("q1", True, 1),
        ("q2", False, 0),
    ]


def test_record_timeout_never_changes_score():
    board = Scoreboard()
    team = Team(id="a", name="A")

    board.record_timeout(team, _question("q1"))

    assert team.score == 0
    assert team.answered_questions[0].correct is False
    assert team.answered_questions[0].selected_option is None


def test_score_matches_correct_answer_count_after_mixed_sequence():
    board = Scoreboard()
    team = Team(id="a", name="A")
    other = Team(id="b", name="B")
    choices = [1, None, 0, 1, None, 1, 3]

    for index, choice in enumerate(choices):
        question = _question(f"q{index}")
        if choice is None:
            board.record_timeout(team, question)
        else:
            board.record_answer(team, question, choice)

    assert team.score == sum(1 for a in team.answered_questions if a.correct) == 3
    assert other.score == 0 and other.answered_questions == []


def test_rank_teams_shares_rank_on_ties_and_keeps_team_order():
    teams = [
        Team(id="a", name="Alpha", score=2),
        Team(id="b", name="Bravo", score=5),
        Team(id="c", name="Charlie", score=2),
        Team(id="d", name="Delta", score=1),
    ]

    standings = Scoreboard().rank_teams(_quiz(teams, []))

    assert [(s.rank, s.name) for s in standings] == [
        (1, "Bravo"),
        (2, "Alpha"),
        (2, "Charlie"),
        (4, "Delta"),
    ]


def test_build_results_summarises_teams_and_levels():
    board = Scoreboard()
    alpha = Team(id="a", name="Alpha")
    bravo = Team(id="b", name="Bravo")
    questions = [
        _question("e1", team_id="a"),
        _question("e2", team_id="b"),
        _question("m1", level=Level.MEDIUM, team_id="a"),
    ]
    board.record_answer(alpha, questions[0], 1)
    board.record_answer(bravo, questions[1], 1)
    board.record_answer(alpha, questions[2], 1)

    results = board.build_results(_quiz([alpha, bravo], questions))

    assert results.total_questions_per_team == 3
    assert results.team_count == 2
    assert results.topic_count == 2
    assert results.winners == ["Alpha"]
    top = results.standings[0]
    assert top.correct_by_level == {Level.EASY: 1, Level.MEDIUM: 1, Level.HARD: 0}
    assert top.accuracy_percent == 100.0
    assert results.question_reviews == []


def test_build_results_reviews_questions_when_answers_are_deferred():
    board = Scoreboard()
    alpha = Team(id="a", name="Alpha")
    questions = [_question("e1", team_id="a"), _question("e2", team_id="a")]
    board.record_answer(alpha, questions[0], 2)
    board.record_timeout(alpha, questions[1])

    results = board.build_results(_quiz([alpha], questions, show_answers_at_end=True))

    assert [(r.question_id, r.selected_option, r.correct, r.correct_answer) for r in results.question_reviews] == [
        ("e1", 2, False, 1),
        ("e2", None, False, 1),
    ]
    assert results.standings[0].timed_out == 1
    assert results.winners == ["Alpha"]


def test_build_results_can_withhold_reviews_while_playing():
    board = Scoreboard()
    alpha = Team(id="a", name="Alpha")
    questions = [_question("e1", team_id="a")]

    results = board.build_results(_quiz([alpha], questions, show_answers_at_end=True), include_reviews=False)

    assert results.question_reviews == []
    assert results.standings[0].name == "Alpha"
