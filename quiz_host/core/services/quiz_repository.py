"""Quiz persistence: an in-memory store and a JSON-file-backed variant."""

from __future__ import annotations

import copy
from pathlib import Path
from threading import Lock

from pydantic import TypeAdapter, ValidationError

from quiz_host.core.models import LEVEL_ORDER, Level, Quiz, Team


class QuizNotFoundError(LookupError):
    """Raised when a quiz id is unknown to the store."""


class QuizOwnershipError(PermissionError):
    """Raised when the caller does not own the quiz it is acting on."""


class QuizStoreError(RuntimeError):
    """Raised when the backing storage cannot be read or written."""


class QuizRepository:
    """Stores quiz definitions and their last session results.

    Quizzes are deep-copied on the way in and out, so a running session never
    shares objects with the stored record until ``update`` is called.
    """

    def __init__(self) -> None:
        self._quizzes: dict[str, Quiz] = {}
        self._lock = Lock()

    def insert(self, quiz: Quiz) -> Quiz:
        prepared = self._prepare_quiz(quiz)
        with self._lock:
            if prepared.id in self._quizzes:
                raise ValueError(f"Quiz {prepared.id} already exists.")
            self._write(prepared.id, prepared)
        return copy.deepcopy(prepared)

    def get(self, quiz_id: str) -> Quiz:
        with self._lock:
            quiz = self._quizzes.get(quiz_id)
            if quiz is None:
                raise QuizNotFoundError(f"Quiz {quiz_id} not found.")
            return copy.deepcopy(quiz)

    def get_owned(self, quiz_id: str, owner_id: str) -> Quiz:
        quiz = self.get(quiz_id)
        if quiz.owner_id != owner_id:
            raise QuizOwnershipError(f"Quiz {quiz_id} belongs to another user.")
        return quiz

    def list_for_owner(self, owner_id: str) -> list[Quiz]:
        with self._lock:
            owned = [copy.deepcopy(q) for q in self._quizzes.values() if q.owner_id == owner_id]
        return sorted(owned, key=lambda q: q.created_at)

    def delete(self, quiz_id: str, owner_id: str) -> None:
        with self._lock:
            quiz = self._quizzes.get(quiz_id)
            if quiz is None:
                raise QuizNotFoundError(f"Quiz {quiz_id} not found.")
            if quiz.owner_id != owner_id:
                raise QuizOwnershipError(f"Quiz {quiz_id} belongs to another user.")
            self._write(quiz_id, None)

    def update(self, quiz: Quiz) -> None:
        with self._lock:
            stored = self._quizzes.get(quiz.id)
            if stored is None:
                raise QuizNotFoundError(f"Quiz {quiz.id} not found.")
            if stored.owner_id != quiz.owner_id:
                raise QuizOwnershipError(f"Quiz {quiz.id} belongs to another user.")
            self._write(quiz.id, copy.deepcopy(quiz))

    def _write(self, quiz_id: str, quiz: Quiz | None) -> None:
        """Apply one change and persist it, undoing the change if persisting fails."""
        previous = self._quizzes.get(quiz_id)
        if quiz is None:
            self._quizzes.pop(quiz_id, None)
        else:
            self._quizzes[quiz_id] = quiz
        try:
            self._persist()
        except QuizStoreError:
            if previous is None:
                self._quizzes.pop(quiz_id, None)
            else:
                self._quizzes[quiz_id] = previous
            raise

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held."""

    def _prepare_quiz(self, quiz: Quiz) -> Quiz:
        """Validate and normalize a quiz definition before storage."""
        title = quiz.title.strip()
        if not title:
            raise ValueError("Quiz title must not be empty.")
        if not quiz.owner_id:
            raise ValueError("Quiz must have an owner.")

        teams = [self._prepare_team(team) for team in quiz.teams]
        if not teams:
            raise ValueError("Quiz must have at least one team.")
        if len({team.id for team in teams}) != len(teams):
            raise ValueError("Team ids must be unique within a quiz.")

        prepared = copy.deepcopy(quiz)
        prepared.title = title
        prepared.topics = [topic.strip() for topic in quiz.topics if topic.strip()]
        prepared.category_ids = [int(category_id) for category_id in quiz.category_ids]
        prepared.questions_per_level = self._normalize_level_map(
            quiz.questions_per_level, "Question count", minimum=0
        )
        prepared.timeouts_in_seconds = self._normalize_level_map(
            quiz.timeouts_in_seconds, "Timeout", minimum=1
        )
        prepared.teams = teams
        return prepared

    @staticmethod
    def _prepare_team(team: Team) -> Team:
        name = team.name.strip()
        if not name:
            raise ValueError("Team name must not be empty.")
        return Team(id=team.id, name=name, score=team.score, answered_questions=list(team.answered_questions))

    @staticmethod
    def _normalize_level_map(values: dict, label: str, minimum: int) -> dict[Level, int]:
        normalized: dict[Level, int] = {}
        for level in LEVEL_ORDER:
            raw_value = values.get(level, values.get(level.value))
            if raw_value is None:
                raise ValueError(f"{label} for level '{level.value}' is missing.")
            if not isinstance(raw_value, int) or isinstance(raw_value, bool):
                raise ValueError(f"{label} for level '{level.value}' must be an integer.")
            if raw_value < minimum:
                raise ValueError(f"{label} for level '{level.value}' must be at least {minimum}.")
            normalized[level] = raw_value
        return normalized


_QUIZ_LIST_ADAPTER = TypeAdapter(list[Quiz])


class JsonQuizRepository(QuizRepository):
    """Quiz store that mirrors its contents to a JSON document on every write."""

    def __init__(self, file_path: Path) -> None:
        super().__init__()
        self._file_path = file_path.resolve()
        for quiz in self._load():
            self._quizzes[quiz.id] = quiz

    def _load(self) -> list[Quiz]:
        if not self._file_path.exists():
            return []
        try:
            return _QUIZ_LIST_ADAPTER.validate_json(self._file_path.read_bytes())
        except (OSError, ValidationError) as exc:
            raise QuizStoreError(f"Unable to read quiz data from {self._file_path}.") from exc

    def _persist(self) -> None:
        document = _QUIZ_LIST_ADAPTER.dump_json(list(self._quizzes.values()), indent=2)
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_bytes(document)
        except OSError as exc:
            raise QuizStoreError(f"Unable to write quiz data to {self._file_path}.") from exc
