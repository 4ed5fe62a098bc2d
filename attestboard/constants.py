"""
Engine-wide constants for the workout leaderboard pipeline.

This module contains the protocol identifiers and magic numbers used throughout
the codebase to improve maintainability and clarity.
"""

class EventConstants:
    """Constants related to the relay wire format."""

    # Event kind used for workout records
    WORKOUT_EVENT_KIND = 1301

    # Tag names
    TAG_EXERCISE = "exercise"
    TAG_DISTANCE = "distance"
    TAG_DURATION = "duration"
    TAG_CALORIES = "calories"
    TAG_SPLIT = "split"
    TAG_SPLIT_PACE = "split_pace"
    TAG_STEPS = "steps"
    TAG_TEAM = "team"
    TAG_CHARITY = "charity"

    # Activity filter that matches every workout
    ANY_ACTIVITY = "Any"

    KM_PER_MILE = 1.609344

class DistanceConstants:
    """Constants for target-distance leaderboards."""

    # Recorded distance must reach this share of the target to qualify
    TARGET_DISTANCE_MARGIN = 0.95

    # Daily running buckets: name -> target km
    DAILY_BUCKETS = {
        "5k": 5.0,
        "10k": 10.0,
        "half": 21.1,
        "marathon": 42.2,
    }

    # Minimum split count per target for split-based eligibility
    SPLIT_THRESHOLDS = {
        5.0: 5,
        10.0: 10,
        21.1: 21,
        42.2: 42,
    }

    DAILY_ACTIVITY = "running"
    STEPS_ACTIVITY = "walking"
    STEPS_BUCKET = "steps"

class CacheConstants:
    """Constants for caching behavior."""

    # Maximum in-memory cache size (number of entries)
    DEFAULT_MAX_CACHE_SIZE = 500

    # Length of the roster fingerprint embedded in cache keys
    FINGERPRINT_LENGTH = 16
