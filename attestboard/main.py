import argparse
import asyncio
import sys
from datetime import date, datetime
from typing import List, Optional, Sequence

from attestboard.config import Config
from attestboard.data_models.competition import CompetitionConfig, ScoringMetric, leaderboard_timezone
from attestboard.data_models.leaderboard import LeaderboardEntry
from attestboard.data_models.workout import Participant
from attestboard.services.leaderboard import LeaderboardService
from attestboard.utils.leaderboard_exceptions import LeaderboardException
from attestboard.utils.logger import setup_logger

logger = setup_logger(__name__)


def _parse_participant(value: str) -> Participant:
    """IDENTITY or IDENTITY=Display Name."""
    identity, _, name = value.partition('=')
    if not identity:
        raise argparse.ArgumentTypeError(f"Invalid participant: {value!r}")
    return Participant(identity=identity.strip(), display_name=name.strip() or None)


def _parse_timestamp(value: str) -> datetime:
    """ISO timestamp; naive values are read in the leaderboard timezone."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=leaderboard_timezone())
    return parsed


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date: {value!r}")


def _add_competition_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--id", dest="competition_id", required=True, help="Competition identifier")
    parser.add_argument(
        "--metric",
        required=True,
        choices=[metric.value for metric in ScoringMetric],
        help="Scoring metric"
    )
    parser.add_argument("--start", type=_parse_timestamp, required=True, help="Window start (ISO 8601)")
    parser.add_argument("--end", type=_parse_timestamp, required=True, help="Window end, exclusive (ISO 8601)")
    parser.add_argument("--activity", default="Any", help="Activity type filter (default: Any)")
    parser.add_argument("--name", default="", help="Competition display name")
    parser.add_argument(
        "--participant",
        type=_parse_participant,
        action="append",
        default=[],
        help="Repeatable roster member, IDENTITY or IDENTITY=Display Name",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="attestboard", description="Workout attestation leaderboards")
    subparsers = parser.add_subparsers(dest="command", required=True)

    league = subparsers.add_parser("league", help="Rank a league over its window")
    _add_competition_arguments(league)

    event = subparsers.add_parser("event", help="Rank an event, optionally at a target distance")
    _add_competition_arguments(event)
    event.add_argument("--target-distance", type=float, help="Target distance in km")

    goal = subparsers.add_parser("goal", help="Show team progress towards a goal")
    _add_competition_arguments(goal)
    goal.add_argument("--goal", type=float, required=True, help="Team goal value")
    goal.add_argument("--unit", default="km", help="Goal unit (default: km)")

    daily = subparsers.add_parser("daily", help="Show the daily distance leaderboards")
    daily.add_argument("--team", help="Team tag to restrict to (default: everyone)")
    daily.add_argument("--participant", help="Only show buckets containing this identity")
    daily.add_argument("--day", type=_parse_day, help="Calendar day, YYYY-MM-DD (default: today)")
    daily.add_argument("--refresh", action="store_true", help="Ignore cached boards")
    return parser


def _competition_from_args(args) -> CompetitionConfig:
    return CompetitionConfig(
        competition_id=args.competition_id,
        metric=ScoringMetric.parse(args.metric),
        start=args.start,
        end=args.end,
        activity_type=args.activity,
        name=args.name,
        target_distance=getattr(args, 'target_distance', None),
        team_goal=getattr(args, 'goal', None),
        goal_unit=getattr(args, 'unit', 'km'),
    )


def _print_entries(title: str, entries: List[LeaderboardEntry]):
    print(title)
    if not entries:
        print("  (no entries)")
        return
    for entry in entries:
        print(f"  {entry.rank:>3}. {entry.display_name:<24} {entry.formatted_score:<20} ({entry.workout_count} workouts)")


async def run(args) -> int:
    service = LeaderboardService()
    try:
        if args.command == "daily":
            boards = await service.get_daily_distance_leaderboards(
                group_key=args.team,
                participant_filter=args.participant,
                day=args.day,
                force_refresh=args.refresh,
            )
            for bucket, entries in boards.buckets.items():
                _print_entries(f"{bucket} - {boards.date}", entries)
            return 0

        config = _competition_from_args(args)
        title = config.name or config.competition_id
        if args.command == "league":
            _print_entries(title, await service.compute_league_leaderboard(config, args.participant))
        elif args.command == "event":
            _print_entries(title, await service.compute_event_leaderboard(config, args.participant))
        elif args.command == "goal":
            progress = await service.compute_team_goal_progress(config, args.participant)
            print(f"{title}: {progress.formatted_current} / {progress.formatted_goal} ({progress.percentage:.1f}%)")
        return 0
    except LeaderboardException as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e.user_message}", file=sys.stderr)
        return 2
    finally:
        await service.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    Config.validate()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
