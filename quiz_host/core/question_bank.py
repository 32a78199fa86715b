"""Client for the Open Trivia Database question bank.

The provider caps a single request at fifty questions, so larger requests are
paged. Any failure (transport error, HTTP error, malformed payload or a
non-zero provider code) ends the paging loop and whatever was collected so far
is returned. Callers are expected to cope with short results.
"""

from __future__ import annotations

import html
import logging
from typing import Any

import requests

from quiz_host.constants.trivia_constants import (
    TRIVIA_CATEGORIES_URL,
    TRIVIA_PAGE_LIMIT,
    TRIVIA_QUESTION_TYPE,
    TRIVIA_QUESTIONS_URL,
    TRIVIA_REQUEST_TIMEOUT_SECONDS,
    TRIVIA_SUCCESS_CODE,
)
from quiz_host.core.models import Level, TriviaCategory, TriviaItem

logger = logging.getLogger(__name__)


def _unescape(text: Any) -> str:
    return html.unescape(str(text or "")).strip()


class OpenTriviaClient:
    """Fetches raw trivia items and categories over HTTP."""

    def __init__(
        self,
        session: requests.Session | None = None,
        questions_url: str = TRIVIA_QUESTIONS_URL,
        categories_url: str = TRIVIA_CATEGORIES_URL,
        timeout: float = TRIVIA_REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session or requests.Session()
        self._questions_url = questions_url
        self._categories_url = categories_url
        self._timeout = timeout

    def fetch_questions(
        self,
        difficulty: Level,
        amount: int,
        category_id: int | None = None,
    ) -> list[TriviaItem]:
        """Return up to ``amount`` decoded trivia items."""
        collected: list[TriviaItem] = []
        while len(collected) < amount:
            page_size = min(TRIVIA_PAGE_LIMIT, amount - len(collected))
            page = self._fetch_page(difficulty, page_size, category_id)
            if not page:
                break
            collected.extend(page)
        if len(collected) < amount:
            logger.warning(
                "Question bank returned %d of %d %s questions (category=%s)",
                len(collected),
                amount,
                difficulty.value,
                category_id,
            )
        return collected[:amount]

    def fetch_categories(self) -> list[TriviaCategory]:
        try:
            response = self._session.get(self._categories_url, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Category catalog fetch failed: %s", exc)
            return []

        raw_categories = data.get("trivia_categories") if isinstance(data, dict) else None
        if not isinstance(raw_categories, list):
            logger.warning("Category catalog payload malformed")
            return []

        categories: list[TriviaCategory] = []
        for entry in raw_categories:
            if not isinstance(entry, dict):
                continue
            try:
                categories.append(TriviaCategory(id=int(entry["id"]), name=_unescape(entry.get("name"))))
            except (KeyError, TypeError, ValueError):
                continue
        return categories

    def _fetch_page(
        self,
        difficulty: Level,
        amount: int,
        category_id: int | None,
    ) -> list[TriviaItem]:
        params: dict[str, Any] = {
            "amount": amount,
            "difficulty": difficulty.value,
            "type": TRIVIA_QUESTION_TYPE,
        }
        if category_id is not None:
            params["category"] = category_id
        try:
            response = self._session.get(self._questions_url, params=params, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Question bank request failed: %s", exc)
            return []

        if not isinstance(data, dict):
            logger.warning("Question bank payload malformed: %r", type(data).__name__)
            return []
        response_code = data.get("response_code")
        if response_code != TRIVIA_SUCCESS_CODE:
            logger.warning("Question bank reported response_code=%s", response_code)
            return []

        results = data.get("results")
        if not isinstance(results, list):
            return []
        logger.debug("Fetched %d %s questions (category=%s)", len(results), difficulty.value, category_id)
        return [item for item in (_parse_item(raw) for raw in results) if item is not None]


def _parse_item(raw: Any) -> TriviaItem | None:
    if not isinstance(raw, dict):
        return None
    question_text = _unescape(raw.get("question"))
    correct = _unescape(raw.get("correct_answer"))
    incorrect = raw.get("incorrect_answers")
    if not question_text or not correct or not isinstance(incorrect, list) or not incorrect:
        return None
    return TriviaItem(
        question_text=question_text,
        correct_answer_text=correct,
        incorrect_answer_texts=[_unescape(option) for option in incorrect],
    )
