"""
Leaderboard service for attested workout competitions.

Computes league, event, team-goal and daily distance leaderboards from
workout events gathered across relays. Results are cached per competition
window and roster; closed windows are cached for a long time because their
result can no longer change.
"""

import asyncio
import logging
from dataclasses import asdict
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from attestboard.config import Config
from attestboard.constants import DistanceConstants, EventConstants
from attestboard.data_models.competition import CompetitionConfig, ScoringMetric, leaderboard_timezone
from attestboard.data_models.leaderboard import DailyLeaderboards, LeaderboardEntry, TeamGoalProgress
from attestboard.data_models.workout import Participant, WorkoutAttestation, normalize_roster
from attestboard.operations.event_parser import parse_events_chunked
from attestboard.operations.selection import apply_target_distance, select_attestations
from attestboard.services.base import BaseService
from attestboard.services.cache import CacheAdapter, create_cache, roster_fingerprint, select_cache_ttl
from attestboard.services.relay_gateway import EventRetrievalGateway, RelayFilter
from attestboard.utils.formatting import format_goal_value, format_score, format_steps
from attestboard.utils.identity import is_hex_key, normalize_identity
from attestboard.utils.ranking import RankingUtility
from attestboard.utils.scoring_strategies import calculate_scores

logger = logging.getLogger(__name__)

_MILE_UNITS = ('mi', 'mile', 'miles')


class LeaderboardService(BaseService):
    """Service for competition leaderboards with caching."""

    def __init__(self, gateway: Optional[EventRetrievalGateway] = None, cache: Optional[CacheAdapter] = None):
        super().__init__(cache or create_cache())
        self.gateway = gateway or EventRetrievalGateway()

    async def compute_league_leaderboard(self, config: CompetitionConfig, roster) -> List[LeaderboardEntry]:
        """Rank every roster member over the competition window."""
        return await self._compute_leaderboard("league", config, roster, target_distance=None)

    async def compute_event_leaderboard(self, config: CompetitionConfig, roster) -> List[LeaderboardEntry]:
        """Rank an event; a target distance restricts and re-times eligible workouts."""
        return await self._compute_leaderboard("event", config, roster, target_distance=config.target_distance)

    async def compute_team_goal_progress(self, config: CompetitionConfig, roster) -> TeamGoalProgress:
        """Combined roster total for the window measured against the team goal."""
        config.validate()
        participants = normalize_roster(roster)
        goal = config.team_goal or 0.0
        if not participants:
            return self._build_progress(0.0, goal, config)

        cache_key = self._cache_key("goal", config, participants, None) + f":{goal}:{config.goal_unit}"
        cached = await self._cached_or_none(cache_key, lambda value: TeamGoalProgress(**value))
        if cached is not None:
            return cached

        attestations = await self._collect(config, participants)
        current = self._sum_for_goal(attestations, config)
        progress = self._build_progress(current, goal, config)
        await self._cache_set(cache_key, asdict(progress), select_cache_ttl(config.end))
        return progress

    async def get_daily_distance_leaderboards(
        self,
        group_key: Optional[str] = None,
        participant_filter: Optional[str] = None,
        day: Optional[date] = None,
        force_refresh: bool = False
    ) -> DailyLeaderboards:
        """
        Build today's (or ``day``'s) distance boards for a team or globally.

        Args:
            group_key: Team tag value to restrict to; None for everyone
            participant_filter: Identity whose boards to show; buckets without
                an entry for this participant come back empty
            day: Calendar day in the leaderboard timezone (defaults to today)
            force_refresh: Drop the cached boards before computing

        Returns:
            DailyLeaderboards with the 5k, 10k, half, marathon and steps buckets
        """
        tz = leaderboard_timezone()
        day = day or datetime.now(tz).date()
        start = datetime.combine(day, time(0, 0), tzinfo=tz)
        end = start + timedelta(days=1)
        cache_key = f"daily:{group_key or 'global'}:{day.isoformat()}"

        if force_refresh:
            await self._cache_invalidate(cache_key)

        boards = await self._cached_or_none(cache_key, DailyLeaderboards.from_dict)
        if boards is None:
            boards = await self._build_daily_boards(group_key, day, start, end)
            await self._cache_set(cache_key, boards.to_dict(), select_cache_ttl(end))

        if participant_filter:
            identity = normalize_identity(participant_filter) or participant_filter
            return self._filter_for_participant(boards, identity)
        return boards

    async def _compute_leaderboard(
        self,
        kind: str,
        config: CompetitionConfig,
        roster,
        target_distance: Optional[float]
    ) -> List[LeaderboardEntry]:
        config.validate()
        participants = normalize_roster(roster)
        if not participants:
            logger.debug(f"Empty roster for {config.competition_id} - no query issued")
            return []

        cache_key = self._cache_key(kind, config, participants, target_distance)
        cached = await self._cached_or_none(cache_key, _decode_entries)
        if cached is not None:
            return cached

        attestations = await self._collect(config, participants)
        if target_distance:
            attestations = apply_target_distance(attestations, target_distance)

        selections = select_attestations(attestations, config.metric)
        scores = calculate_scores(
            selections,
            config.metric,
            participants,
            tz=leaderboard_timezone(),
            reference_day=self._reference_day(config)
        )

        entries = [
            LeaderboardEntry(
                rank=0,
                participant=participant.identity,
                display_name=participant.label,
                score=scores[participant.identity].score,
                formatted_score=format_score(scores[participant.identity].score, config.metric),
                workout_count=scores[participant.identity].workout_count,
            )
            for participant in participants
        ]
        ranked = RankingUtility.rank_entries(entries, config.metric)

        await self._cache_set(cache_key, [entry.to_dict() for entry in ranked], select_cache_ttl(config.end))
        logger.info(f"Computed {kind} leaderboard {config.competition_id}: {len(ranked)} entries")
        return ranked

    async def _collect(self, config: CompetitionConfig, participants: Sequence[Participant]) -> List[WorkoutAttestation]:
        """Fetch, parse and filter the window's attestations for the roster."""
        authors = tuple(participant.identity for participant in participants if is_hex_key(participant.identity))
        skipped = len(participants) - len(authors)
        if skipped:
            logger.warning(f"Skipping {skipped} roster identities that are not public keys for {config.competition_id}")
        if not authors:
            return []

        identities = set(authors)
        relay_filter = RelayFilter(
            authors=authors,
            since=config.start_timestamp,
            until=config.end_timestamp - 1,
            limit=Config.QUERY_LIMIT,
        )
        result = await self.gateway.fetch_events(relay_filter)
        attestations = await parse_events_chunked(result.events, Config.PARSE_BATCH_SIZE)

        # Relays may ignore filter fields
        return [
            attestation for attestation in attestations
            if attestation.participant in identities
            and config.contains(attestation.created_at)
            and attestation.matches_activity(config.activity_type)
        ]

    @staticmethod
    def _cache_key(kind: str, config: CompetitionConfig, participants: Iterable[Participant], target_distance) -> str:
        fingerprint = roster_fingerprint(participant.identity for participant in participants)
        target = target_distance if target_distance else "none"
        return (
            f"leaderboard:{kind}:{config.competition_id}:{config.metric.value}:{target}:"
            f"{fingerprint}:{config.activity_type.lower()}:{config.start_timestamp}:{config.end_timestamp}"
        )

    @staticmethod
    def _reference_day(config: CompetitionConfig) -> date:
        """Today, or the window's last day once it has closed."""
        tz = leaderboard_timezone()
        today = datetime.now(tz).date()
        last_day = (config.end - timedelta(seconds=1)).astimezone(tz).date()
        return min(today, last_day)

    @staticmethod
    def _sum_for_goal(attestations: Sequence[WorkoutAttestation], config: CompetitionConfig) -> float:
        metric = config.metric
        if metric == ScoringMetric.TOTAL_DURATION:
            return float(sum(a.duration for a in attestations))
        if metric == ScoringMetric.TOTAL_CALORIES:
            return float(sum(a.calories or 0 for a in attestations))
        if metric in (ScoringMetric.MOST_WORKOUTS, ScoringMetric.TOTAL_WORKOUTS):
            return float(len(attestations))

        total_km = sum(a.distance for a in attestations)
        if config.goal_unit.lower() in _MILE_UNITS:
            return total_km / EventConstants.KM_PER_MILE
        return float(total_km)

    @staticmethod
    def _build_progress(current: float, goal: float, config: CompetitionConfig) -> TeamGoalProgress:
        percentage = current / goal * 100 if goal > 0 else 0.0
        return TeamGoalProgress(
            current=current,
            goal=goal,
            percentage=percentage,
            formatted_current=format_goal_value(current, config.metric, config.goal_unit),
            formatted_goal=format_goal_value(goal, config.metric, config.goal_unit),
            unit=config.goal_unit,
        )

    async def _build_daily_boards(self, group_key: Optional[str], day: date, start: datetime, end: datetime) -> DailyLeaderboards:
        start_ts = int(start.timestamp())
        end_ts = int(end.timestamp())
        relay_filter = RelayFilter(since=start_ts, until=end_ts - 1, limit=Config.QUERY_LIMIT)

        result = await self.gateway.fetch_events(relay_filter)
        if not result.events:
            logger.info(f"No events for {day.isoformat()}, retrying once in {Config.EMPTY_RETRY_DELAY:.1f}s")
            await asyncio.sleep(Config.EMPTY_RETRY_DELAY)
            result = await self.gateway.fetch_events(relay_filter)

        attestations = [
            attestation for attestation in await parse_events_chunked(result.events, Config.PARSE_BATCH_SIZE)
            if start_ts <= attestation.created_at < end_ts
            and (group_key is None or attestation.team == group_key)
        ]

        running = [a for a in attestations if a.matches_activity(DistanceConstants.DAILY_ACTIVITY)]
        buckets: Dict[str, List[LeaderboardEntry]] = {
            name: self._distance_bucket(running, target_km)
            for name, target_km in DistanceConstants.DAILY_BUCKETS.items()
        }
        walking = [a for a in attestations if a.matches_activity(DistanceConstants.STEPS_ACTIVITY)]
        buckets[DistanceConstants.STEPS_BUCKET] = self._steps_bucket(walking)

        logger.info(
            f"Daily boards {group_key or 'global'} {day.isoformat()}: "
            + ", ".join(f"{name}={len(entries)}" for name, entries in buckets.items())
        )
        return DailyLeaderboards(group_key=group_key, date=day.isoformat(), buckets=buckets)

    @staticmethod
    def _distance_bucket(attestations: Sequence[WorkoutAttestation], target_km: float) -> List[LeaderboardEntry]:
        """Best time at target_km for everyone with an eligible run."""
        selections = select_attestations(apply_target_distance(attestations, target_km), ScoringMetric.FASTEST_TIME)
        entries = []
        for identity, selection in selections.items():
            if not selection.attestations:
                continue
            best = selection.attestations[0].duration
            entries.append(LeaderboardEntry(
                rank=0,
                participant=identity,
                display_name=Participant(identity).label,
                score=best,
                formatted_score=format_score(best, ScoringMetric.FASTEST_TIME),
                workout_count=selection.qualifying_count,
            ))
        return RankingUtility.rank_entries(entries, ScoringMetric.FASTEST_TIME)

    @staticmethod
    def _steps_bucket(attestations: Sequence[WorkoutAttestation]) -> List[LeaderboardEntry]:
        """Highest single-workout step count per walker."""
        best_steps: Dict[str, int] = {}
        counts: Dict[str, int] = {}
        for attestation in sorted(attestations, key=lambda a: (a.created_at, a.event_id)):
            if not attestation.steps:
                continue
            counts[attestation.participant] = counts.get(attestation.participant, 0) + 1
            if attestation.steps > best_steps.get(attestation.participant, 0):
                best_steps[attestation.participant] = attestation.steps

        entries = [
            LeaderboardEntry(
                rank=0,
                participant=identity,
                display_name=Participant(identity).label,
                score=float(steps),
                formatted_score=format_steps(steps),
                workout_count=counts[identity],
            )
            for identity, steps in best_steps.items()
        ]
        return RankingUtility.assign_ranks(RankingUtility.sort_by_value(entries, lower_is_better=False))

    @staticmethod
    def _filter_for_participant(boards: DailyLeaderboards, identity: str) -> DailyLeaderboards:
        buckets = {
            name: entries if any(entry.participant == identity for entry in entries) else []
            for name, entries in boards.buckets.items()
        }
        return DailyLeaderboards(group_key=boards.group_key, date=boards.date, buckets=buckets)


def _decode_entries(cached) -> List[LeaderboardEntry]:
    return [LeaderboardEntry.from_dict(item) for item in cached]
