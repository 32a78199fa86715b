"""Open Trivia Database endpoints and request limits."""

TRIVIA_QUESTIONS_URL: str = "https://opentdb.com/api.php"
TRIVIA_CATEGORIES_URL: str = "https://opentdb.com/api_category.php"
TRIVIA_PAGE_LIMIT: int = 50
TRIVIA_QUESTION_TYPE: str = "multiple"
TRIVIA_REQUEST_TIMEOUT_SECONDS: float = 20.0
TRIVIA_SUCCESS_CODE: int = 0
