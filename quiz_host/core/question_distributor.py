"""Builds the team-assigned question set for one level of a quiz."""

from __future__ import annotations

import logging
import math
import random
from typing import Protocol
from uuid import UUID

from quiz_host.constants.quiz_constants import (
    PLACEHOLDER_OPTIONS,
    PLACEHOLDER_QUESTION_TEMPLATE,
)
from quiz_host.core.models import Level, Question, Quiz, Team, TriviaItem

logger = logging.getLogger(__name__)


class QuestionBank(Protocol):
    def fetch_questions(
        self,
        difficulty: Level,
        amount: int,
        category_id: int | None = None,
    ) -> list[TriviaItem]: ...


class QuestionDistributor:
    """Fetches, shuffles and splits questions into contiguous per-team blocks.

    Every random draw (pool order, option order, question ids) comes from the
    ``rng`` handed in, so a seeded ``random.Random`` reproduces a level exactly.
    """

    def __init__(self, question_bank: QuestionBank, rng: random.Random | None = None) -> None:
        self._question_bank = question_bank
        self._rng = rng or random.Random()

    def set_rng(self, rng: random.Random) -> None:
        self._rng = rng

    def distribute(
        self,
        level: Level,
        category_ids: list[int],
        per_team_count: int,
        teams: list[Team],
    ) -> list[Question]:
        """Return exactly ``per_team_count * len(teams)`` questions for ``level``."""
        if per_team_count <= 0 or not teams:
            return []

        total_needed = per_team_count * len(teams)
        pool = self._fetch_pool(level, category_ids, total_needed)
        self._rng.shuffle(pool)
        built = [self._build_question(item, level) for item in pool[:total_needed]]

        questions: list[Question] = []
        placeholder_count = 0
        for team_position, team in enumerate(teams):
            start = team_position * per_team_count
            block = built[start:start + per_team_count]
            for question in block:
                question.team_id = team.id
            while len(block) < per_team_count:
                block.append(self._placeholder_question(level, team, start + len(block) + 1))
                placeholder_count += 1
            questions.extend(block)

        if placeholder_count:
            logger.warning(
                "Only %d of %d %s questions available; padded with %d placeholders",
                len(built),
                total_needed,
                level.value,
                placeholder_count,
            )
        return questions

    def load_level(self, quiz: Quiz, level: Level) -> list[Question]:
        """Distribute ``level`` for ``quiz`` and replace that level's questions in place."""
        questions = self.distribute(
            level,
            quiz.category_ids,
            quiz.questions_per_level.get(level, 0),
            quiz.teams,
        )
        quiz.replace_level_questions(level, questions)
        return questions

    def _fetch_pool(self, level: Level, category_ids: list[int], total_needed: int) -> list[TriviaItem]:
        if category_ids:
            per_category = math.ceil(total_needed / len(category_ids))
            batches = [
                self._question_bank.fetch_questions(level, per_category, category_id)
                for category_id in category_ids
            ]
        else:
            batches = [self._question_bank.fetch_questions(level, total_needed)]

        pool: list[TriviaItem] = []
        seen: set[str] = set()
        for batch in batches:
            for item in batch:
                # Paged fetches may repeat a question; no two teams share one.
                if item.question_text in seen:
                    continue
                seen.add(item.question_text)
                pool.append(item)
        return pool

    def _build_question(self, item: TriviaItem, level: Level) -> Question:
        options = [item.correct_answer_text, *item.incorrect_answer_texts]
        self._rng.shuffle(options)
        return Question(
            id=self._next_id(),
            text=item.question_text,
            options=options,
            correct_answer=options.index(item.correct_answer_text),
            level=level,
            team_id="",
        )

    def _placeholder_question(self, level: Level, team: Team, number: int) -> Question:
        return Question(
            id=self._next_id(),
            text=PLACEHOLDER_QUESTION_TEMPLATE.format(level=level.value, number=number),
            options=list(PLACEHOLDER_OPTIONS),
            correct_answer=0,
            level=level,
            team_id=team.id,
        )

    def _next_id(self) -> str:
        return UUID(int=self._rng.getrandbits(128), version=4).hex
