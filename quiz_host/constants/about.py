"""Static metadata describing QuizHost."""

APP_NAME = "QuizHost"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "QuizHost runs multi-team trivia sessions on one shared screen. "
    "Create a quiz with topics, teams and per-level settings, then let the teams "
    "take turns answering questions pulled from the Open Trivia Database."
)
