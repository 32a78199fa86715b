"""Business logic for running a quiz session shared between the API and the timer."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
import logging
import random
from threading import Lock
from uuid import uuid4

from quiz_host.core.models import (
    Level,
    Quiz,
    SessionSnapshot,
    SessionState,
    Team,
    TriviaCategory,
    first_level,
    next_level,
)
from quiz_host.core.question_bank import OpenTriviaClient
from quiz_host.core.question_distributor import QuestionDistributor
from quiz_host.core.services.countdown_timer import CountdownTimer, Ticker
from quiz_host.core.services.game_session import AdvanceOutcome, GameSession
from quiz_host.core.services.quiz_repository import QuizOwnershipError, QuizRepository
from quiz_host.core.services.scoreboard import QuizResults, Scoreboard

logger = logging.getLogger(__name__)


class QuizManager:
    """Facade for quiz services: repository, distributor, session, scoreboard and timer.

    All session transitions happen under one lock. Question loading is the
    exception: the network fetch runs with the lock released while the session
    sits in ``LOADING_LEVEL``, and its result is only installed if the session
    generation is still the one that started the load.
    """

    def __init__(
        self,
        repository: QuizRepository | None = None,
        question_bank: OpenTriviaClient | None = None,
        ticker: Ticker | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._lock = Lock()

        # Services
        self._repository = repository or QuizRepository()
        self._question_bank = question_bank or OpenTriviaClient()
        self._distributor = QuestionDistributor(self._question_bank, rng)
        self._scoreboard = Scoreboard()
        self._session = GameSession(self._scoreboard)
        self._timer = CountdownTimer(self._on_timer_tick, ticker=ticker)

        self._session_generation = 0

    # --- Quiz Repository Delegation ---

    def create_quiz(
        self,
        owner_id: str,
        title: str,
        team_names: list[str],
        questions_per_level: dict[Level, int],
        timeouts_in_seconds: dict[Level, int],
        topics: list[str] | None = None,
        category_ids: list[int] | None = None,
        show_answers_at_end: bool = False,
    ) -> Quiz:
        quiz = Quiz(
            id=uuid4().hex,
            owner_id=owner_id,
            title=title,
            topics=list(topics or []),
            category_ids=list(category_ids or []),
            questions_per_level=dict(questions_per_level),
            timeouts_in_seconds=dict(timeouts_in_seconds),
            show_answers_at_end=show_answers_at_end,
            created_at=datetime.now(timezone.utc),
            teams=[Team(id=uuid4().hex, name=name) for name in team_names],
        )
        created = self._repository.insert(quiz)
        logger.info("Quiz %s created by %s with %d team(s)", created.id, owner_id, len(created.teams))
        return created

    def list_quizzes(self, owner_id: str) -> list[Quiz]:
        return self._repository.list_for_owner(owner_id)

    def delete_quiz(self, quiz_id: str, owner_id: str) -> None:
        # start reads the store under the same lock.
        with self._lock:
            active = self._session.quiz
            if active is not None and active.id == quiz_id:
                raise RuntimeError("Cannot delete a quiz while its session is running.")
            self._repository.delete(quiz_id, owner_id)
        logger.info("Quiz %s deleted by %s", quiz_id, owner_id)

    def get_stored_results(self, quiz_id: str, owner_id: str) -> QuizResults:
        quiz = self._repository.get_owned(quiz_id, owner_id)
        return self._scoreboard.build_results(quiz)

    def get_categories(self) -> list[TriviaCategory]:
        return self._question_bank.fetch_categories()

    # --- Game Session Delegation ---

    def start(self, quiz_id: str, owner_id: str) -> SessionSnapshot:
        """Start a session for ``quiz_id`` and block until the first level is loaded."""
        with self._lock:
            quiz = self._repository.get_owned(quiz_id, owner_id)
            if self._session.is_active():
                raise RuntimeError("A quiz session is already running.")
            self._timer.reset()
            self._session_generation += 1
            generation = self._session_generation
            self._session.begin(quiz)
            logger.info("Session started for quiz %s", quiz_id)

        self._load_levels(first_level(), generation)
        return self.get_snapshot()

    def submit_answer(self, question_id: str, option_index: int) -> SessionSnapshot:
        with self._lock:
            if self._session.submit_answer(question_id, option_index):
                self._timer.stop()
            else:
                logger.debug("Ignored answer for question %s", question_id)
            return self._snapshot_locked()

    def advance(self) -> SessionSnapshot:
        with self._lock:
            outcome = self._session.advance()
            if outcome is AdvanceOutcome.IGNORED:
                logger.debug("Ignored advance in state %s", self._session.state.value)
            elif outcome is AdvanceOutcome.REVEALED:
                self._timer.stop()
            elif outcome is AdvanceOutcome.NEXT_TURN:
                self._timer.start(self._session.current_timeout())
            elif outcome is AdvanceOutcome.COMPLETE:
                self._timer.stop()
                logger.info("Quiz %s complete", self._session.quiz.id)
            else:
                self._timer.stop()
            level = self._session.level
            generation = self._session_generation

        if outcome is AdvanceOutcome.LOAD_LEVEL:
            self._load_levels(level, generation)
        return self.get_snapshot()

    def end(self, owner_id: str) -> SessionSnapshot:
        """Persist the final quiz snapshot, then tear the session down.

        If persisting fails the session is left exactly as it was so the
        caller can retry.
        """
        with self._lock:
            quiz = self._session.quiz
            if quiz is not None:
                if quiz.owner_id != owner_id:
                    raise QuizOwnershipError(f"Quiz {quiz.id} belongs to another user.")
                try:
                    self._repository.update(quiz)
                except Exception:
                    logger.exception("Failed to persist results for quiz %s", quiz.id)
                    raise
                logger.info("Session ended for quiz %s", quiz.id)
            self._timer.reset()
            self._session.clear()
            self._session_generation += 1
            return self._snapshot_locked()

    def get_snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def get_session_results(self) -> QuizResults | None:
        with self._lock:
            quiz = self._session.quiz
            if quiz is None:
                return None
            finished = self._session.state is SessionState.COMPLETE
            return self._scoreboard.build_results(quiz, include_reviews=finished)

    def get_session_quiz(self) -> Quiz | None:
        with self._lock:
            quiz = self._session.quiz
            return copy.deepcopy(quiz) if quiz is not None else None

    # --- Settings ---

    def set_shuffle_seed(self, seed: int | None) -> None:
        with self._lock:
            self._distributor.set_rng(random.Random(seed))

    # --- Internals ---

    def _load_levels(self, level: Level, generation: int) -> None:
        """Load ``level`` (and any following empty levels) unless the session moved on."""
        current: Level | None = level
        while current is not None:
            with self._lock:
                if not self._is_loading(generation, current):
                    return
                quiz = self._session.quiz
                category_ids = list(quiz.category_ids)
                per_team_count = quiz.questions_per_level.get(current, 0)
                teams = list(quiz.teams)

            try:
                questions = self._distributor.distribute(current, category_ids, per_team_count, teams)
            except Exception:
                logger.exception("Loading %s questions failed", current.value)
                with self._lock:
                    if self._is_loading(generation, current):
                        self._session.clear()
                        self._session_generation += 1
                raise

            with self._lock:
                if not self._is_loading(generation, current):
                    logger.warning("Discarding %s questions loaded for a session that has ended", current.value)
                    return
                self._session.quiz.replace_level_questions(current, questions)
                if self._session.level_ready():
                    self._timer.start(self._session.current_timeout())
                    logger.info("Level %s loaded with %d question(s)", current.value, len(questions))
                    return
                following = next_level(current)
                if following is None:
                    self._session.complete()
                    logger.info("Quiz %s complete", self._session.quiz.id)
                else:
                    logger.info("Level %s has no questions, skipping", current.value)
                    self._session.begin_level(following)
            current = following

    def _is_loading(self, generation: int, level: Level) -> bool:
        return (
            generation == self._session_generation
            and self._session.state is SessionState.LOADING_LEVEL
            and self._session.level is level
        )

    def _on_timer_tick(self, timer_generation: int) -> None:
        with self._lock:
            if self._timer.tick(timer_generation) and self._session.expire():
                logger.info("Time is up for the current question")

    def _snapshot_locked(self) -> SessionSnapshot:
        return self._session.snapshot(time_left=self._timer.remaining)
