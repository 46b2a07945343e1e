"""API routes for controlling the timer and reading the history."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from pomodoro_ledger.focus.durations import UI_MAX_MINUTES, UI_MIN_MINUTES
from pomodoro_ledger.focus.models import Mode, TimerState
from pomodoro_ledger.focus.pomodoro import progress_percent
from pomodoro_ledger.focus.reports import (
    all_time_stats,
    format_time,
    next_long_break_in,
    today_stats,
    weekly_breakdown,
)
from pomodoro_ledger.focus.service import PomodoroService
from pomodoro_ledger.storage.database import Database
from pomodoro_ledger.web.app import get_db, get_service

router = APIRouter(tags=["api"])


class DurationsModel(BaseModel):
    """Interval lengths in minutes."""
    work_minutes: int = Field(ge=UI_MIN_MINUTES, le=UI_MAX_MINUTES)
    short_break_minutes: int = Field(ge=UI_MIN_MINUTES, le=UI_MAX_MINUTES)
    long_break_minutes: int = Field(ge=UI_MIN_MINUTES, le=UI_MAX_MINUTES)


class TaskResponse(BaseModel):
    """Task with its saved countdowns."""
    id: str
    name: str
    category: str | None
    created_at: str
    is_active: bool
    work_seconds_left: int
    work_running: bool


class StateResponse(BaseModel):
    """Timer snapshot."""
    mode: Mode
    seconds_left: int
    time_display: str
    progress_percent: float
    is_running: bool
    completed_work_sessions: int
    next_long_break_in: int
    durations_seconds: dict[str, int]
    active_task_id: str | None
    tasks: list[TaskResponse]


class ModeRequest(BaseModel):
    mode: Mode


class TaskCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: str | None = Field(default=None, max_length=100)


class ActiveTaskRequest(BaseModel):
    task_id: str


class TaskStatsResponse(BaseModel):
    task_id: str
    task_name: str
    total_minutes: int
    pomodoros: int


class TodayStatsResponse(BaseModel):
    """Work done today."""
    date: str
    total_work_minutes: int
    pomodoro_count: int
    per_task: list[TaskStatsResponse]


class DayTotalResponse(BaseModel):
    date: str
    weekday: str
    work_minutes: int


class ReportResponse(BaseModel):
    """All-time totals plus a per-day breakdown."""
    total_work_minutes: int
    pomodoro_count: int
    total_tasks: int
    tasks_with_pomodoros: int
    days: list[DayTotalResponse]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database_connected: bool
    database_size_mb: float
    ticker_running: bool


def task_response(state: TimerState, task_id: str) -> TaskResponse:
    task = state.find_task(task_id)
    timers = state.timers_for(task_id)
    return TaskResponse(
        id=task.id,
        name=task.name,
        category=task.category,
        created_at=task.created_at,
        is_active=task.id == state.active_task_id,
        work_seconds_left=(
            timers.work_seconds if timers.work_seconds is not None else state.durations.work
        ),
        work_running=timers.work_running,
    )


def state_response(state: TimerState) -> StateResponse:
    return StateResponse(
        mode=state.mode,
        seconds_left=state.seconds_left,
        time_display=format_time(state.seconds_left),
        progress_percent=round(progress_percent(state), 1),
        is_running=state.is_running,
        completed_work_sessions=state.completed_work_sessions,
        next_long_break_in=next_long_break_in(state.completed_work_sessions),
        durations_seconds={mode.value: state.durations.for_mode(mode) for mode in Mode},
        active_task_id=state.active_task_id,
        tasks=[task_response(state, task.id) for task in state.tasks],
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Database = Depends(get_db),
    service: PomodoroService = Depends(get_service),
) -> HealthResponse:
    """API health check."""
    try:
        ok = await db.check_integrity()
        size = await db.get_size_mb()
        return HealthResponse(
            status="healthy" if ok else "unhealthy: integrity check failed",
            database_connected=db.is_connected,
            database_size_mb=size,
            ticker_running=service.ticker_running,
        )
    except Exception as e:
        return HealthResponse(
            status=f"unhealthy: {e}",
            database_connected=False,
            database_size_mb=0,
            ticker_running=service.ticker_running,
        )


@router.get("/state", response_model=StateResponse)
async def get_state(service: PomodoroService = Depends(get_service)) -> StateResponse:
    return state_response(service.state)


@router.post("/start", response_model=StateResponse)
async def start_timer(service: PomodoroService = Depends(get_service)) -> StateResponse:
    return state_response(service.start())


@router.post("/pause", response_model=StateResponse)
async def pause_timer(service: PomodoroService = Depends(get_service)) -> StateResponse:
    return state_response(service.pause())


@router.post("/reset", response_model=StateResponse)
async def reset_timer(service: PomodoroService = Depends(get_service)) -> StateResponse:
    return state_response(service.reset())


@router.post("/tick", response_model=StateResponse)
async def tick_timer(service: PomodoroService = Depends(get_service)) -> StateResponse:
    """Advance the countdown now instead of waiting for the ticker."""
    return state_response(service.tick())


@router.post("/mode", response_model=StateResponse)
async def set_mode(
    body: ModeRequest,
    service: PomodoroService = Depends(get_service),
) -> StateResponse:
    return state_response(service.set_mode(body.mode))


@router.put("/durations", response_model=StateResponse)
async def set_durations(
    body: DurationsModel,
    service: PomodoroService = Depends(get_service),
) -> StateResponse:
    """Change the interval lengths. Stops the timer."""
    return state_response(
        service.set_durations(body.work_minutes, body.short_break_minutes, body.long_break_minutes)
    )


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(service: PomodoroService = Depends(get_service)) -> list[TaskResponse]:
    state = service.state
    return [task_response(state, task.id) for task in state.tasks]


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(
    body: TaskCreateRequest,
    service: PomodoroService = Depends(get_service),
) -> TaskResponse:
    before = service.state
    state = service.add_task(body.name, body.category)
    if state is before:
        raise HTTPException(status_code=400, detail="Task name cannot be empty")
    return task_response(state, state.tasks[0].id)


@router.put("/tasks/active", response_model=StateResponse)
async def activate_task(
    body: ActiveTaskRequest,
    service: PomodoroService = Depends(get_service),
) -> StateResponse:
    """Switch the active task. Unknown ids leave the state unchanged."""
    return state_response(service.set_active_task(body.task_id))


@router.delete("/tasks/{task_id}", response_model=StateResponse)
async def delete_task(
    task_id: str,
    service: PomodoroService = Depends(get_service),
) -> StateResponse:
    return state_response(service.remove_task(task_id))


@router.get("/stats/today", response_model=TodayStatsResponse)
async def get_today_stats(
    day: date | None = Query(None, description="Local date in YYYY-MM-DD format"),
    service: PomodoroService = Depends(get_service),
) -> TodayStatsResponse:
    """Work done today, or on ``day`` when given."""
    stats = today_stats(service.state, today=day)
    return TodayStatsResponse(
        date=stats.date,
        total_work_minutes=stats.total_work_minutes,
        pomodoro_count=stats.pomodoro_count,
        per_task=[
            TaskStatsResponse(
                task_id=entry.task_id,
                task_name=entry.task_name,
                total_minutes=entry.total_minutes,
                pomodoros=entry.pomodoros,
            )
            for entry in stats.per_task
        ],
    )


@router.get("/report", response_model=ReportResponse)
async def get_report(
    days: int = Query(7, ge=1, le=90),
    service: PomodoroService = Depends(get_service),
) -> ReportResponse:
    state = service.state
    totals = all_time_stats(state)
    return ReportResponse(
        total_work_minutes=totals.total_work_minutes,
        pomodoro_count=totals.pomodoro_count,
        total_tasks=totals.total_tasks,
        tasks_with_pomodoros=totals.tasks_with_pomodoros,
        days=[
            DayTotalResponse(date=day.date, weekday=day.weekday, work_minutes=day.work_minutes)
            for day in weekly_breakdown(state, days=days)
        ],
    )
