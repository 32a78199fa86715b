from __future__ import annotations

import random

import pytest

from quiz_host.core.models import Level, TriviaItem
from quiz_host.core.quiz_manager import QuizManager
from quiz_host.core.services.quiz_repository import QuizRepository

OWNER = "owner-1"


class FakeQuestionBank:
    """Hands out unique trivia items; ``available`` caps how many exist per level."""

    def __init__(self, available: int | None = None) -> None:
        self.available = available
        self.calls: list[tuple[Level, int, int | None]] = []
        self._served: dict[Level, int] = {}

    def fetch_questions(self, difficulty, amount, category_id=None):
        self.calls.append((difficulty, amount, category_id))
        served = self._served.get(difficulty, 0)
        if self.available is not None:
            amount = max(0, min(amount, self.available - served))
        items = [
            TriviaItem(
                question_text=f"{difficulty.value} question {served + n} (cat {category_id})",
                correct_answer_text=f"right {served + n}",
                incorrect_answer_texts=[f"wrong {served + n}a", f"wrong {served + n}b", f"wrong {served + n}c"],
            )
            for n in range(amount)
        ]
        self._served[difficulty] = served + amount
        return items

    def fetch_categories(self):
        return []


class ManualHandle:
    def __init__(self, callback) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTicker:
    """Ticker driven by the test instead of a thread."""

    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []

    def schedule(self, interval, callback):
        handle = ManualHandle(callback)
        self.handles.append(handle)
        return handle

    def active(self) -> list[ManualHandle]:
        return [h for h in self.handles if not h.cancelled]

    def tick(self, count: int = 1) -> None:
        for _ in range(count):
            for handle in self.active():
                handle.callback()


def levels(easy: int, medium: int, hard: int) -> dict[Level, int]:
    return {Level.EASY: easy, Level.MEDIUM: medium, Level.HARD: hard}


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def question_bank() -> FakeQuestionBank:
    return FakeQuestionBank()


@pytest.fixture
def repository() -> QuizRepository:
    return QuizRepository()


@pytest.fixture
def manager(repository, question_bank, ticker) -> QuizManager:
    return QuizManager(
        repository=repository,
        question_bank=question_bank,
        ticker=ticker,
        rng=random.Random(7),
    )


@pytest.fixture
def make_quiz(manager):
    def factory(
        teams: list[str] | None = None,
        per_level: dict[Level, int] | None = None,
        timeouts: dict[Level, int] | None = None,
        show_answers_at_end: bool = False,
        category_ids: list[int] | None = None,
    ):
        return manager.create_quiz(
            owner_id=OWNER,
            title="Friday trivia",
            team_names=teams or ["Owls", "Foxes"],
            questions_per_level=per_level or levels(2, 1, 1),
            timeouts_in_seconds=timeouts or levels(20, 30, 45),
            topics=["General"],
            category_ids=category_ids,
            show_answers_at_end=show_answers_at_end,
        )

    return factory
