from typing import Optional

from fastapi import APIRouter, Depends, Query

from goaltracker.api.deps import Services, get_services
from goaltracker.schemas.goal import (
    GoalCreate,
    GoalPeriodEntry,
    GoalUpdate,
    GoalWithProgress,
    ProgressAdd,
    StreakRead,
)


router = APIRouter(prefix="/goals", tags=["goals"])


@router.post("/", response_model=GoalWithProgress)
def create_goal(payload: GoalCreate, svc: Services = Depends(get_services)):
    goal = svc.goals.create_goal(payload)
    return svc.goals.to_read_model(goal)


@router.get("/", response_model=list[GoalWithProgress])
def list_goals(
    active_only: bool = Query(False),
    svc: Services = Depends(get_services),
):
    """
    List goals with their current period, most recent first.

    The home screen calls:
      GET /goals?active_only=true
    """
    return svc.goals.list_goals(active_only=active_only)


@router.get("/{goal_id}", response_model=GoalWithProgress)
def get_goal(goal_id: str, svc: Services = Depends(get_services)):
    return svc.goals.get_goal(goal_id)


@router.put("/{goal_id}", response_model=GoalWithProgress)
def update_goal(goal_id: str, payload: GoalUpdate, svc: Services = Depends(get_services)):
    goal = svc.goals.update_goal(goal_id, payload)
    return svc.goals.to_read_model(goal)


@router.post("/{goal_id}/pause", response_model=GoalWithProgress)
def pause_goal(goal_id: str, svc: Services = Depends(get_services)):
    return svc.goals.to_read_model(svc.goals.set_active(goal_id, False))


@router.post("/{goal_id}/resume", response_model=GoalWithProgress)
def resume_goal(goal_id: str, svc: Services = Depends(get_services)):
    return svc.goals.to_read_model(svc.goals.set_active(goal_id, True))


@router.delete("/{goal_id}", status_code=204)
def delete_goal(goal_id: str, svc: Services = Depends(get_services)):
    svc.goals.delete_goal(goal_id)


@router.post("/{goal_id}/clone", response_model=GoalWithProgress)
def clone_goal(goal_id: str, svc: Services = Depends(get_services)):
    return svc.goals.to_read_model(svc.goals.clone_goal(goal_id))


@router.post("/{goal_id}/progress", response_model=GoalPeriodEntry)
def add_progress(goal_id: str, payload: ProgressAdd, svc: Services = Depends(get_services)):
    timestamp = payload.timestamp or svc.store.clock.now()
    row = svc.progress.add_progress(goal_id, payload.value, timestamp)
    goal = svc.store.require_goal(goal_id)
    return GoalPeriodEntry(
        period_start=row.period_start,
        period_end=row.period_end,
        value=row.current_value,
        target_value=goal.target_value,
        is_completed=row.is_completed,
    )


@router.get("/{goal_id}/history", response_model=list[GoalPeriodEntry])
def period_history(
    goal_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    svc: Services = Depends(get_services),
):
    return svc.goals.get_period_history(goal_id, limit=limit)


@router.get("/{goal_id}/streak", response_model=StreakRead)
def goal_streak(goal_id: str, svc: Services = Depends(get_services)):
    return StreakRead(goal_id=goal_id, streak_count=svc.goals.calculate_streak(goal_id))
