"""FastAPI server that exposes quiz management and the live session to the browser client."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from pydantic import BaseModel, Field
import uvicorn

from quiz_host.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from quiz_host.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    OWNER_COOKIE_MAX_AGE_SECONDS,
    OWNER_COOKIE_NAME,
)
from quiz_host.constants.quiz_constants import (
    DEFAULT_QUESTIONS_PER_LEVEL,
    DEFAULT_TIMEOUTS_IN_SECONDS,
)
from quiz_host.core.models import Level, Quiz, SessionSnapshot, SessionState, Team
from quiz_host.core.question_renderer import renderer
from quiz_host.core.quiz_manager import QuizManager
from quiz_host.core.services.quiz_repository import (
    QuizNotFoundError,
    QuizOwnershipError,
    QuizStoreError,
)
from quiz_host.core.services.scoreboard import QuizResults


def _ensure_owner_id(request: Request, response: Response) -> str:
    owner_id = request.cookies.get(OWNER_COOKIE_NAME)
    if owner_id:
        return owner_id
    owner_id = uuid4().hex
    response.set_cookie(
        key=OWNER_COOKIE_NAME,
        value=owner_id,
        max_age=OWNER_COOKIE_MAX_AGE_SECONDS,
        samesite="lax",
        httponly=True,
    )
    return owner_id


class CreateQuizPayload(BaseModel):
    """Payload schema for creating a quiz."""

    title: str
    team_names: list[str] = Field(min_length=1)
    topics: list[str] = Field(default_factory=list)
    category_ids: list[int] = Field(default_factory=list)
    questions_per_level: dict[Level, int] = Field(
        default_factory=lambda: {Level(k): v for k, v in DEFAULT_QUESTIONS_PER_LEVEL.items()}
    )
    timeouts_in_seconds: dict[Level, int] = Field(
        default_factory=lambda: {Level(k): v for k, v in DEFAULT_TIMEOUTS_IN_SECONDS.items()}
    )
    show_answers_at_end: bool = False


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers."""

    question_id: str
    option_index: int


class TeamView(BaseModel):
    id: str
    name: str
    score: int
    answered_count: int


class QuizSummary(BaseModel):
    id: str
    title: str
    topics: list[str]
    category_ids: list[int]
    questions_per_level: dict[Level, int]
    timeouts_in_seconds: dict[Level, int]
    show_answers_at_end: bool
    created_at: datetime
    teams: list[TeamView]


class QuestionView(BaseModel):
    id: str
    text: str
    options: list[str]
    text_html: str
    options_html: list[str]
    level: Level
    team_id: str
    correct_answer: int | None = None


class SessionView(BaseModel):
    state: SessionState
    quiz_id: str | None = None
    level: Level | None = None
    team_index: int = 0
    question_index: int = 0
    time_left: int = 0
    selected_option: int | None = None
    answers_revealed: bool = False
    show_answers_at_end: bool = False
    current_team: TeamView | None = None
    current_question: QuestionView | None = None


def _team_view(team: Team) -> TeamView:
    return TeamView(
        id=team.id,
        name=team.name,
        score=team.score,
        answered_count=len(team.answered_questions),
    )


def _quiz_summary(quiz: Quiz) -> QuizSummary:
    return QuizSummary(
        id=quiz.id,
        title=quiz.title,
        topics=quiz.topics,
        category_ids=quiz.category_ids,
        questions_per_level=quiz.questions_per_level,
        timeouts_in_seconds=quiz.timeouts_in_seconds,
        show_answers_at_end=quiz.show_answers_at_end,
        created_at=quiz.created_at,
        teams=[_team_view(team) for team in quiz.teams],
    )


def _session_view(snapshot: SessionSnapshot) -> SessionView:
    question_view = None
    question = snapshot.current_question
    if question is not None:
        # Deferred quizzes keep the correct answer for the results view
        question_view = QuestionView(
            id=question.id,
            text=question.text,
            options=question.options,
            text_html=renderer.render_fragment(question.text),
            options_html=[renderer.render_inline(option) for option in question.options],
            level=question.level,
            team_id=question.team_id,
            correct_answer=(
                question.correct_answer
                if snapshot.answers_revealed and not snapshot.show_answers_at_end
                else None
            ),
        )
    return SessionView(
        state=snapshot.state,
        quiz_id=snapshot.quiz_id,
        level=snapshot.level,
        team_index=snapshot.team_index,
        question_index=snapshot.question_index,
        time_left=snapshot.time_left,
        selected_option=snapshot.selected_option,
        answers_revealed=snapshot.answers_revealed,
        show_answers_at_end=snapshot.show_answers_at_end,
        current_team=_team_view(snapshot.current_team) if snapshot.current_team else None,
        current_question=question_view,
    )


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, QuizNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, QuizOwnershipError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, QuizStoreError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=409, detail=str(exc))


_HANDLED_ERRORS = (QuizNotFoundError, QuizOwnershipError, QuizStoreError, ValueError, RuntimeError)


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    @app.get("/identity")
    def get_identity(request: Request, response: Response) -> dict[str, str]:
        return {"owner_id": _ensure_owner_id(request, response)}

    @app.get("/categories")
    def get_categories(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [{"id": c.id, "name": c.name} for c in manager.get_categories()]

    @app.get("/quizzes")
    def list_quizzes(
        request: Request,
        response: Response,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[QuizSummary]:
        owner_id = _ensure_owner_id(request, response)
        return [_quiz_summary(quiz) for quiz in manager.list_quizzes(owner_id)]

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: CreateQuizPayload,
        request: Request,
        response: Response,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> QuizSummary:
        owner_id = _ensure_owner_id(request, response)
        try:
            quiz = manager.create_quiz(
                owner_id=owner_id,
                title=payload.title,
                team_names=payload.team_names,
                questions_per_level=payload.questions_per_level,
                timeouts_in_seconds=payload.timeouts_in_seconds,
                topics=payload.topics,
                category_ids=payload.category_ids,
                show_answers_at_end=payload.show_answers_at_end,
            )
        except _HANDLED_ERRORS as exc:
            raise _to_http_error(exc) from exc
        return _quiz_summary(quiz)

    @app.delete("/quizzes/{quiz_id}", status_code=204)
    def delete_quiz(
        quiz_id: str,
        request: Request,
        response: Response,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> None:
        owner_id = _ensure_owner_id(request, response)
        try:
            manager.delete_quiz(quiz_id, owner_id)
        except _HANDLED_ERRORS as exc:
            raise _to_http_error(exc) from exc

    @app.get("/quizzes/{quiz_id}/results")
    def get_quiz_results(
        quiz_id: str,
        request: Request,
        response: Response,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> QuizResults:
        owner_id = _ensure_owner_id(request, response)
        try:
            return manager.get_stored_results(quiz_id, owner_id)
        except _HANDLED_ERRORS as exc:
            raise _to_http_error(exc) from exc

    @app.post("/quizzes/{quiz_id}/start")
    def start_quiz(
        quiz_id: str,
        request: Request,
        response: Response,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> SessionView:
        owner_id = _ensure_owner_id(request, response)
        try:
            snapshot = manager.start(quiz_id, owner_id)
        except _HANDLED_ERRORS as exc:
            raise _to_http_error(exc) from exc
        return _session_view(snapshot)

    @app.get("/session")
    def get_session(manager: QuizManager = Depends(quiz_manager_dep)) -> SessionView:
        return _session_view(manager.get_snapshot())

    @app.post("/session/answer")
    def submit_answer(
        payload: AnswerPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> SessionView:
        return _session_view(manager.submit_answer(payload.question_id, payload.option_index))

    @app.post("/session/advance")
    def advance(manager: QuizManager = Depends(quiz_manager_dep)) -> SessionView:
        return _session_view(manager.advance())

    @app.get("/session/results")
    def get_session_results(manager: QuizManager = Depends(quiz_manager_dep)) -> QuizResults:
        results = manager.get_session_results()
        if results is None:
            raise HTTPException(status_code=404, detail="No quiz session is running.")
        return results

    @app.post("/session/end")
    def end_session(
        request: Request,
        response: Response,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> SessionView:
        owner_id = _ensure_owner_id(request, response)
        try:
            snapshot = manager.end(owner_id)
        except _HANDLED_ERRORS as exc:
            raise _to_http_error(exc) from exc
        return _session_view(snapshot)

    return app


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API with uvicorn; blocks until the server stops."""
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    server.run()
