"""Network configuration constants for the quiz application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
OWNER_COOKIE_NAME: str = "quizhost_owner_id"
OWNER_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 30
