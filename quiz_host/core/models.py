"""Domain models for the quiz application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Level(str, Enum):
    """Difficulty tier, played in ascending order."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# Single source of truth for level ordering.
LEVEL_ORDER: tuple[Level, ...] = (Level.EASY, Level.MEDIUM, Level.HARD)


def first_level() -> Level:
    return LEVEL_ORDER[0]


def next_level(level: Level) -> Level | None:
    """Return the level played after ``level``, or None after the last one."""
    position = LEVEL_ORDER.index(level)
    if position + 1 < len(LEVEL_ORDER):
        return LEVEL_ORDER[position + 1]
    return None


class SessionState(str, Enum):
    """Phases of a live quiz session."""

    IDLE = "idle"
    LOADING_LEVEL = "loading_level"
    AWAITING_ANSWER = "awaiting_answer"
    ANSWER_REVEALED = "answer_revealed"
    COMPLETE = "complete"


@dataclass(slots=True)
class Question:
    """Multiple-choice question owned by exactly one team."""

    id: str
    text: str
    options: list[str]
    correct_answer: int
    level: Level
    team_id: str


@dataclass(slots=True)
class AnsweredQuestion:
    """A team's response to one question; ``selected_option`` is None on timeout."""

    question_id: str
    correct: bool
    selected_option: int | None = None


@dataclass(slots=True)
class Team:
    id: str
    name: str
    score: int = 0
    answered_questions: list[AnsweredQuestion] = field(default_factory=list)

    def has_answered(self, question_id: str) -> bool:
        return any(a.question_id == question_id for a in self.answered_questions)


@dataclass(slots=True)
class Quiz:
    """Quiz definition plus the questions and scores of its last session."""

    id: str
    owner_id: str
    title: str
    topics: list[str]
    category_ids: list[int]
    questions_per_level: dict[Level, int]
    timeouts_in_seconds: dict[Level, int]
    show_answers_at_end: bool
    created_at: datetime
    teams: list[Team] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)

    def questions_for_level(self, level: Level) -> list[Question]:
        return [q for q in self.questions if q.level == level]

    def questions_for_team(self, level: Level, team_id: str) -> list[Question]:
        return [q for q in self.questions if q.level == level and q.team_id == team_id]

    def replace_level_questions(self, level: Level, questions: list[Question]) -> None:
        """Swap out the questions of ``level``, keeping every other level untouched."""
        kept = [q for q in self.questions if q.level != level]
        self.questions = kept + list(questions)

    def find_question(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)

    def find_team(self, team_id: str) -> Team | None:
        return next((t for t in self.teams if t.id == team_id), None)


@dataclass(slots=True)
class TriviaItem:
    """Raw, HTML-decoded item as delivered by the question bank."""

    question_text: str
    correct_answer_text: str
    incorrect_answer_texts: list[str]


@dataclass(slots=True)
class TriviaCategory:
    id: int
    name: str


@dataclass(slots=True)
class SessionSnapshot:
    """Read-only view of the session cursor handed to callers."""

    state: SessionState
    quiz_id: str | None = None
    level: Level | None = None
    team_index: int = 0
    question_index: int = 0
    time_left: int = 0
    selected_option: int | None = None
    answers_revealed: bool = False
    show_answers_at_end: bool = False
    current_team: Team | None = None
    current_question: Question | None = None
