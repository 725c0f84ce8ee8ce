"""Shared goal-tracking constants.

Centralizes the metric keys and defaults used across progress and workout
processing so we can document and adjust them in one place.
"""

# Metric keys a workout summary may carry per exercise.
# "sessions" is not summed from the summary: a workout counts as one.
SUMMED_METRICS = ("distance", "duration", "reps", "sets", "volume")
SESSIONS_METRIC = "sessions"

# Contribution of one completed workout toward a sessions goal
SESSION_CONTRIBUTION = 1.0

# Default display unit per metric
DEFAULT_UNITS = {
    "distance": "km",
    "duration": "min",
    "reps": "reps",
    "sets": "sets",
    "volume": "kg",
    "sessions": "sessions",
}

# Exercise recording field -> metrics a goal on that exercise can track
FIELD_METRICS = {
    "distance": ("distance",),
    "duration": ("duration",),
    "reps": ("reps", "sets", "volume"),
    "weight": ("reps", "sets", "volume"),
}

# Week periods start on Monday (datetime.weekday() == 0)
WEEK_START_WEEKDAY = 0
