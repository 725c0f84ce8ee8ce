from fastapi import APIRouter, Depends

from goaltracker.api.deps import Services, get_services
from goaltracker.schemas.goal import WorkoutCompletion, WorkoutResult

router = APIRouter(prefix="/workouts", tags=["workouts"])


@router.post("/complete", response_model=WorkoutResult)
def complete_workout(payload: WorkoutCompletion, svc: Services = Depends(get_services)):
    """Credit a finished workout to matching auto-track goals.

    Called once per workout, after all sets are final:
      POST /workouts/complete
      {"exercise_ids": ["row"], "metric_totals": {"row": {"distance": 5.0}}}
    """
    return svc.workouts.process_workout_completion(
        payload.exercise_ids, payload.metric_totals, payload.timestamp
    )
