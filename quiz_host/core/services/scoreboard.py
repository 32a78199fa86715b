"""Service for recording team answers and summarising final results."""

from __future__ import annotations

from dataclasses import dataclass, field

from quiz_host.core.models import LEVEL_ORDER, AnsweredQuestion, Level, Question, Quiz, Team


@dataclass(slots=True)
class TeamStanding:
    """Ranking row for one team, with per-level correct counts."""

    rank: int
    team_id: str
    name: str
    score: int
    answered: int
    timed_out: int
    accuracy_percent: float
    correct_by_level: dict[Level, int] = field(default_factory=dict)


@dataclass(slots=True)
class QuestionReview:
    question_id: str
    level: Level
    text: str
    options: list[str]
    correct_answer: int
    team_name: str
    selected_option: int | None
    correct: bool
    answered: bool


@dataclass(slots=True)
class QuizResults:
    quiz_id: str
    title: str
    total_questions_per_team: int
    team_count: int
    topic_count: int
    standings: list[TeamStanding]
    winners: list[str]
    question_reviews: list[QuestionReview]


class Scoreboard:
    """Ledger for team answers.

    Only the acting team is mutated. The session guards against a second
    answer for the same question, so no duplicate check happens here.
    """

    def record_answer(self, team: Team, question: Question, selected_option: int) -> AnsweredQuestion:
        answer = AnsweredQuestion(
            question_id=question.id,
            correct=selected_option == question.correct_answer,
            selected_option=selected_option,
        )
        team.answered_questions.append(answer)
        if answer.correct:
            team.score += 1
        return answer

    def record_timeout(self, team: Team, question: Question) -> AnsweredQuestion:
        answer = AnsweredQuestion(question_id=question.id, correct=False, selected_option=None)
        team.answered_questions.append(answer)
        return answer

    def reset_teams(self, teams: list[Team]) -> None:
        for team in teams:
            team.score = 0
            team.answered_questions = []

    def rank_teams(self, quiz: Quiz) -> list[TeamStanding]:
        """Order by score descending; ties share a rank and keep team order."""
        ordered = sorted(enumerate(quiz.teams), key=lambda item: (-item[1].score, item[0]))
        standings: list[TeamStanding] = []
        previous_score: int | None = None
        rank = 0
        for position, (_, team) in enumerate(ordered, start=1):
            if team.score != previous_score:
                rank = position
                previous_score = team.score
            standings.append(self._standing_for(quiz, team, rank))
        return standings

    def build_results(self, quiz: Quiz, include_reviews: bool = True) -> QuizResults:
        """Summarise ``quiz``; reviews are only built for deferred-reveal quizzes.

        Pass ``include_reviews=False`` while a session is still being played so
        no correct answer is exposed before the quiz ends.
        """
        standings = self.rank_teams(quiz)
        winners = [s.name for s in standings if s.rank == 1]
        reviews = self._question_reviews(quiz) if quiz.show_answers_at_end and include_reviews else []
        return QuizResults(
            quiz_id=quiz.id,
            title=quiz.title,
            total_questions_per_team=sum(quiz.questions_per_level.get(level, 0) for level in LEVEL_ORDER),
            team_count=len(quiz.teams),
            topic_count=len(quiz.topics),
            standings=standings,
            winners=winners,
            question_reviews=reviews,
        )

    @staticmethod
    def _standing_for(quiz: Quiz, team: Team, rank: int) -> TeamStanding:
        answered = len(team.answered_questions)
        timed_out = sum(1 for a in team.answered_questions if a.selected_option is None)
        accuracy = (team.score / answered) * 100 if answered else 0.0
        levels_by_id = {q.id: q.level for q in quiz.questions}
        correct_by_level = {level: 0 for level in LEVEL_ORDER}
        for answer in team.answered_questions:
            level = levels_by_id.get(answer.question_id)
            if answer.correct and level is not None:
                correct_by_level[level] += 1
        return TeamStanding(
            rank=rank,
            team_id=team.id,
            name=team.name,
            score=team.score,
            answered=answered,
            timed_out=timed_out,
            accuracy_percent=accuracy,
            correct_by_level=correct_by_level,
        )

    @staticmethod
    def _question_reviews(quiz: Quiz) -> list[QuestionReview]:
        reviews: list[QuestionReview] = []
        for level in LEVEL_ORDER:
            for team in quiz.teams:
                answers = {a.question_id: a for a in team.answered_questions}
                for question in quiz.questions_for_team(level, team.id):
                    answer = answers.get(question.id)
                    reviews.append(
                        QuestionReview(
                            question_id=question.id,
                            level=level,
                            text=question.text,
                            options=list(question.options),
                            correct_answer=question.correct_answer,
                            team_name=team.name,
                            selected_option=answer.selected_option if answer else None,
                            correct=answer.correct if answer else False,
                            answered=answer is not None,
                        )
                    )
        return reviews
