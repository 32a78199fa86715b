"""Quiz-related constants shared across the core and server layers."""

DEFAULT_QUESTIONS_PER_LEVEL: dict[str, int] = {"easy": 5, "medium": 5, "hard": 5}
DEFAULT_TIMEOUTS_IN_SECONDS: dict[str, int] = {"easy": 20, "medium": 30, "hard": 45}
TIMER_TICK_INTERVAL_SECONDS: float = 1.0
PLACEHOLDER_OPTIONS: tuple[str, ...] = ("Option A", "Option B", "Option C", "Option D")
PLACEHOLDER_QUESTION_TEMPLATE: str = "Sample {level} question {number}"
