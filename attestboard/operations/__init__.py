"""
Operations Layer

Pure transformations applied to retrieved workout events before scoring.
Operations modules never touch relays or caches; they turn raw events into
the attestations each leaderboard actually ranks.

Each operations module focuses on a single step:
- event_parser: Raw event validation and normalization into attestations
- target_distance: Time-at-distance extraction from split data
- selection: Per-participant deduplication and best-of selection
"""
