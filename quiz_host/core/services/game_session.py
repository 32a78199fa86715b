"""Service for the live session cursor and its turn-taking transitions."""

from __future__ import annotations

import copy
from enum import Enum, auto

from quiz_host.core.models import (
    Level,
    Question,
    Quiz,
    SessionSnapshot,
    SessionState,
    Team,
    first_level,
    next_level,
)
from quiz_host.core.services.scoreboard import Scoreboard


class AdvanceOutcome(Enum):
    """What an ``advance`` call did, so the caller can drive timer and loading."""

    IGNORED = auto()
    REVEALED = auto()
    NEXT_TURN = auto()
    LOAD_LEVEL = auto()
    COMPLETE = auto()


class GameSession:
    """Manages the state of an active quiz session.

    The session holds no lock and performs no I/O. Every transition checks the
    current state first and returns without side effects when it does not
    apply, which is what makes a late timer tick or a double click harmless.
    """

    def __init__(self, scoreboard: Scoreboard | None = None) -> None:
        self._scoreboard = scoreboard or Scoreboard()
        self._quiz: Quiz | None = None
        self._state = SessionState.IDLE
        self._level: Level = first_level()
        self._team_index = 0
        self._question_index = 0
        self._selected_option: int | None = None
        self._answers_revealed = False

    # --- Accessors ---

    @property
    def quiz(self) -> Quiz | None:
        return self._quiz

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def level(self) -> Level:
        return self._level

    @property
    def selected_option(self) -> int | None:
        return self._selected_option

    @property
    def answers_revealed(self) -> bool:
        return self._answers_revealed

    def is_active(self) -> bool:
        return self._state is not SessionState.IDLE

    def is_awaiting_answer(self) -> bool:
        return self._state is SessionState.AWAITING_ANSWER and not self._answers_revealed

    def current_timeout(self) -> int:
        if self._quiz is None:
            return 0
        return self._quiz.timeouts_in_seconds.get(self._level, 0)

    def get_current_team(self) -> Team | None:
        if self._quiz is None or not 0 <= self._team_index < len(self._quiz.teams):
            return None
        return self._quiz.teams[self._team_index]

    def get_current_question(self) -> Question | None:
        if self._state not in (SessionState.AWAITING_ANSWER, SessionState.ANSWER_REVEALED):
            return None
        team = self.get_current_team()
        if team is None or self._quiz is None:
            return None
        questions = self._quiz.questions_for_team(self._level, team.id)
        if not 0 <= self._question_index < len(questions):
            return None
        return questions[self._question_index]

    def snapshot(self, time_left: int = 0) -> SessionSnapshot:
        if self._quiz is None:
            return SessionSnapshot(state=self._state)
        return SessionSnapshot(
            state=self._state,
            quiz_id=self._quiz.id,
            level=self._level,
            team_index=self._team_index,
            question_index=self._question_index,
            time_left=time_left,
            selected_option=self._selected_option,
            answers_revealed=self._answers_revealed,
            show_answers_at_end=self._quiz.show_answers_at_end,
            current_team=copy.deepcopy(self.get_current_team()),
            current_question=copy.deepcopy(self.get_current_question()),
        )

    # --- Lifecycle ---

    def begin(self, quiz: Quiz) -> None:
        """Attach ``quiz`` and enter loading of the first level with fresh scores."""
        self._quiz = quiz
        quiz.questions = []
        self._scoreboard.reset_teams(quiz.teams)
        self.begin_level(first_level())

    def begin_level(self, level: Level) -> None:
        self._state = SessionState.LOADING_LEVEL
        self._level = level
        self._reset_cursor()

    def level_ready(self) -> bool:
        """Leave loading once questions are in place; False means the level is empty."""
        if self._state is not SessionState.LOADING_LEVEL or self._quiz is None:
            return False
        if self._level_question_count() == 0 or not self._quiz.teams:
            return False
        self._state = SessionState.AWAITING_ANSWER
        return True

    def complete(self) -> None:
        self._state = SessionState.COMPLETE
        self._selected_option = None
        self._answers_revealed = False

    def clear(self) -> None:
        self._quiz = None
        self._state = SessionState.IDLE
        self._level = first_level()
        self._reset_cursor()

    # --- Transitions ---

    def submit_answer(self, question_id: str, option_index: int) -> bool:
        """Record the current team's choice. Returns False when the call is ignored."""
        if not self.is_awaiting_answer() or self._selected_option is not None:
            return False
        team = self.get_current_team()
        question = self.get_current_question()
        if team is None or question is None or question.id != question_id:
            return False
        if not 0 <= option_index < len(question.options) or team.has_answered(question.id):
            return False

        self._selected_option = option_index
        self._scoreboard.record_answer(team, question, option_index)
        if not self._quiz.show_answers_at_end:
            self._reveal()
        return True

    def expire(self) -> bool:
        """Countdown ran out: reveal, recording a timeout if nothing was chosen."""
        if not self.is_awaiting_answer():
            return False
        if self._selected_option is None:
            self._record_unanswered()
        self._reveal()
        return True

    def advance(self) -> AdvanceOutcome:
        if self._quiz is None:
            return AdvanceOutcome.IGNORED

        if self._state is SessionState.AWAITING_ANSWER:
            if self._quiz.show_answers_at_end:
                if self._selected_option is None:
                    return AdvanceOutcome.IGNORED
            else:
                # A manual reveal records nothing; only answers and timeouts do.
                self._reveal()
                return AdvanceOutcome.REVEALED
        elif self._state is not SessionState.ANSWER_REVEALED:
            return AdvanceOutcome.IGNORED

        return self._move_on()

    # --- Internals ---

    def _move_on(self) -> AdvanceOutcome:
        team_count = len(self._quiz.teams)
        per_team = self._level_question_count()
        if self._team_index < team_count - 1:
            self._team_index += 1
            self._start_turn()
            return AdvanceOutcome.NEXT_TURN
        if self._question_index < per_team - 1:
            self._team_index = 0
            self._question_index += 1
            self._start_turn()
            return AdvanceOutcome.NEXT_TURN

        following = next_level(self._level)
        if following is None:
            self.complete()
            return AdvanceOutcome.COMPLETE
        self.begin_level(following)
        return AdvanceOutcome.LOAD_LEVEL

    def _start_turn(self) -> None:
        self._state = SessionState.AWAITING_ANSWER
        self._selected_option = None
        self._answers_revealed = False

    def _reveal(self) -> None:
        self._answers_revealed = True
        self._state = SessionState.ANSWER_REVEALED

    def _record_unanswered(self) -> None:
        team = self.get_current_team()
        question = self.get_current_question()
        if team is None or question is None or team.has_answered(question.id):
            return
        self._scoreboard.record_timeout(team, question)

    def _level_question_count(self) -> int:
        if self._quiz is None:
            return 0
        return self._quiz.questions_per_level.get(self._level, 0)

    def _reset_cursor(self) -> None:
        self._team_index = 0
        self._question_index = 0
        self._selected_option = None
        self._answers_revealed = False
