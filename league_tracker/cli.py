"""Command-line interface for League Tracker."""
import argparse
import logging
import sys

from . import __version__
from .app import App, build_app
from .challenges import ChallengeKind, run_all_challenge_updates, update_all_challenge_data
from .config import settings, validate_config, normalize_region
from .database import Database
from .jobs import JobStatus, JobTimeoutError, PipelineOutcome
from .models import (
    Summoner, Match, ChampionMastery, ChampionDetails, ChallengesDetails, ChallengesConfig
)
from .queries import (
    LEADERBOARD_HEAD, get_player_challenges_progress, get_challenge_champions,
    get_challenge_leaderboard_with_highlight, get_challenge_rank,
)
from .riot_api import RiotAPIError, NotFoundError, RateLimitedError
from .updaters import split_riot_id

logger = logging.getLogger(__name__)

# Commands that only touch the local database
OFFLINE_COMMANDS = ('db', 'progress', 'leaderboard')


def setup_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler('league_tracker.log')
        ]
    )


def setup_argparse() -> argparse.ArgumentParser:
    """Set up command line argument parsing."""
    parser = argparse.ArgumentParser(
        description='League Tracker - Keep summoner, match and challenge data up to date.'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    # Global arguments
    parser.add_argument(
        '--region',
        type=str,
        default='na1',
        help='Region code (e.g., na1, euw, kr). Default: na1'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Refresh command
    refresh_parser = subparsers.add_parser('refresh', help='Run the full refresh pipeline for a player')
    refresh_parser.add_argument('riot_id', type=str, help='Riot ID, e.g. Faker#KR1')
    refresh_parser.add_argument(
        '--no-matches',
        action='store_true',
        help='Skip the match history sync'
    )
    refresh_parser.add_argument(
        '--wait',
        action='store_true',
        help='Wait for the match and challenge jobs and sync the whole match history'
    )
    refresh_parser.add_argument(
        '--metrics',
        action='store_true',
        help='Print job queue metrics once the refresh is done'
    )

    # Resolve command
    resolve_parser = subparsers.add_parser('resolve', help='Look up a player, using the cache when fresh')
    resolve_parser.add_argument('riot_id', type=str, help='Riot ID, e.g. Faker#KR1')
    resolve_parser.add_argument(
        '--force',
        action='store_true',
        help='Ignore the cache and fetch from Riot'
    )

    # Challenges command
    challenges_parser = subparsers.add_parser('challenges', help='Rebuild and show champion challenges')
    challenges_parser.add_argument('riot_id', type=str, help='Riot ID, e.g. Faker#KR1')
    challenges_parser.add_argument(
        '--refresh',
        action='store_true',
        help='Refresh the player and their full match history first'
    )

    # Progress command
    progress_parser = subparsers.add_parser('progress', help="Show a player's Riot challenge progress")
    progress_parser.add_argument('riot_id', type=str, help='Riot ID, e.g. Faker#KR1')

    # Leaderboard command
    leaderboard_parser = subparsers.add_parser('leaderboard', help='Show the stored leaderboard of a challenge')
    leaderboard_parser.add_argument('challenge_id', type=int, help='Riot challenge ID, e.g. 101000')
    leaderboard_parser.add_argument(
        '--player',
        type=str,
        help='Riot ID to highlight, with the rows around them when outside the top'
    )

    # DB command
    db_parser = subparsers.add_parser('db', help='Database operations')
    db_subparsers = db_parser.add_subparsers(dest='db_command', help='Database command')
    db_subparsers.add_parser('init', help='Initialize the database')
    db_subparsers.add_parser('reset', help='Reset the database (WARNING: deletes all data)')
    db_subparsers.add_parser('stats', help='Show database statistics')

    return parser


def print_outcome(outcome: PipelineOutcome) -> None:
    print(f"\n=== Refresh {'succeeded' if outcome.success else 'FAILED'} ===")
    for job in outcome.outcomes:
        line = f"{job.job.value:<28} {job.status.value}"
        if job.error:
            line += f"  ({job.error})"
        print(line)


def wait_for_background_jobs(app: App, outcome: PipelineOutcome) -> None:
    """Let fire-and-forget jobs finish before the process exits."""
    for job in outcome.outcomes:
        if job.status is not JobStatus.PENDING:
            continue
        handle = app.queue.get(job.job_id)
        if handle is None:
            continue
        try:
            result = handle.await_completion(settings.MATCH_JOB_TIMEOUT * 10)
            logger.info(f"{job.job.value}: {'done' if result.success else f'failed ({result.error})'}")
        except JobTimeoutError as e:
            logger.warning(str(e))


def refresh_player(args) -> None:
    game_name, tag_line = split_riot_id(args.riot_id)
    with build_app() as app:
        outcome = app.pipeline.refresh(
            game_name, tag_line, args.region,
            include_matches=not args.no_matches,
            await_matches=args.wait,
        )
        print_outcome(outcome)
        if not args.wait:
            wait_for_background_jobs(app, outcome)
        if args.metrics:
            print_queue_metrics(app)
    if not outcome.success:
        sys.exit(1)


def resolve_player(args) -> None:
    game_name, tag_line = split_riot_id(args.riot_id)
    with build_app() as app:
        resolution = app.resolver.resolve(game_name, tag_line, args.region, force_refresh=args.force)

    summoner = resolution.summoner
    if resolution.new_username:
        print(f"{game_name}#{tag_line} is now {resolution.new_username}")
    print(f"\n=== {summoner.riot_id} ({summoner.region}) ===")
    print(f"PUUID: {summoner.puuid}")
    print(f"Level: {summoner.summoner_level}")
    print(f"Last updated: {resolution.last_updated:%Y-%m-%d %H:%M:%S} UTC"
          f" ({'cached' if resolution.is_cached else 'live'})")


def show_challenges(args) -> None:
    game_name, tag_line = split_riot_id(args.riot_id)
    with build_app() as app:
        if args.refresh:
            result = update_all_challenge_data(app.pipeline, app.database, game_name, tag_line, args.region)
        else:
            result = run_all_challenge_updates(app.database, game_name, tag_line, args.region)

        for item in result.results:
            print(f"{item.kind.value:<26} {'ok' if item.success else 'FAILED'}  {item.message}")

        if result.success:
            with app.database.session() as session:
                for kind in ChallengeKind:
                    champions = get_challenge_champions(session, kind, game_name, tag_line, args.region)
                    names = ', '.join(champion.name for champion in champions) or '-'
                    print(f"\n{kind.value} ({len(champions)}): {names}")

    if not result.success:
        sys.exit(1)


def show_progress(args) -> None:
    game_name, tag_line = split_riot_id(args.riot_id)
    database = Database(settings.DATABASE_URL)
    with database.session() as session:
        progress = get_player_challenges_progress(session, game_name, tag_line, args.region)

    if progress is None:
        print(f"No challenge data stored for {game_name}#{tag_line}. Run 'refresh' first.")
        return

    print(f"\n=== Challenge progress for {game_name}#{tag_line} ({len(progress)}) ===")
    for challenge_id, entry in sorted(progress.items()):
        print(f"{challenge_id:>8}  {entry['level'] or '-':<12} value={entry['value']} "
              f"percentile={entry['percentile']}")


def show_leaderboard(args) -> None:
    game_name = tag_line = None
    if args.player:
        game_name, tag_line = split_riot_id(args.player)
    database = Database(settings.DATABASE_URL)
    with database.session() as session:
        entries, has_sections = get_challenge_leaderboard_with_highlight(
            session, args.challenge_id, game_name, tag_line, args.region
        )
        rank = None
        if args.player:
            summoner = Summoner.get_by_riot_id(session, game_name, tag_line, args.region)
            if summoner is not None:
                rank = get_challenge_rank(session, args.challenge_id, summoner.puuid)

    if not entries:
        print(f"No scores stored for challenge {args.challenge_id}.")
        return

    print(f"\n=== Challenge {args.challenge_id} leaderboard ===")
    highlight = f"{game_name}#{tag_line}".lower() if args.player else None
    for index, entry in enumerate(entries):
        if has_sections and index == LEADERBOARD_HEAD:
            print("...")
        riot_id = f"{entry['game_name']}#{entry['tag_line']}"
        marker = '*' if highlight == riot_id.lower() else ' '
        print(f"{marker} {riot_id:<28} {entry['region']:<6} {entry['level'] or '-':<12} value={entry['value']}")
    if args.player:
        print(f"\n{args.player}: {f'rank {rank}' if rank else 'no score'}")


def print_queue_metrics(app: App) -> None:
    metrics = app.queue.metrics()
    print("\n=== Queue Metrics ===")
    for state, count in metrics.counts.items():
        print(f"{state:<10} {count}")
    print(f"workers    {metrics.workers}")
    print(f"latency    {metrics.latency_ms_avg:.0f} ms (average of active jobs)")


def handle_db_operations(args) -> None:
    """Handle database operations."""
    database = Database(settings.DATABASE_URL)

    if args.db_command == 'init':
        print("Initializing database...")
        database.create_tables()
        print("Database initialized successfully.")

    elif args.db_command == 'reset':
        confirm = input("WARNING: This will delete all data. Are you sure? (y/n): ")
        if confirm.lower() == 'y':
            print("Resetting database...")
            database.reset()
            print("Database reset complete.")

    elif args.db_command == 'stats':
        with database.session() as session:
            print("\n=== Database Statistics ===")
            print(f"Summoners: {session.query(Summoner).count()}")
            print(f"Matches: {session.query(Match).count()}")
            print(f"Mastery rows: {session.query(ChampionMastery).count()}")
            print(f"Champions: {session.query(ChampionDetails).count()}")
            print(f"Challenge configs: {session.query(ChallengesConfig).count()}")
            print(f"Players with challenge data: {session.query(ChallengesDetails).count()}")

    else:
        print("Unknown database command. Use 'init', 'reset', or 'stats'.")


def main() -> None:
    """Main entry point for the CLI."""
    parser = setup_argparse()
    args = parser.parse_args()

    setup_logging(args.debug)

    if not hasattr(args, 'command') or args.command is None:
        parser.print_help()
        return

    try:
        args.region = normalize_region(args.region)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(2)

    # Validate configuration
    is_valid, errors = validate_config()
    if not is_valid and args.command not in OFFLINE_COMMANDS:
        for error in errors:
            logger.error(error)
        sys.exit(1)

    try:
        if args.command == 'refresh':
            refresh_player(args)
        elif args.command == 'resolve':
            resolve_player(args)
        elif args.command == 'challenges':
            show_challenges(args)
        elif args.command == 'progress':
            show_progress(args)
        elif args.command == 'leaderboard':
            show_leaderboard(args)
        elif args.command == 'db':
            handle_db_operations(args)
        else:
            parser.print_help()
    except NotFoundError as e:
        logger.error(f"No such player: {str(e)}")
        sys.exit(1)
    except RateLimitedError as e:
        logger.error(f"Riot API rate limit reached, try again shortly ({str(e)})")
        sys.exit(1)
    except RiotAPIError as e:
        logger.error(f"Riot API error: {str(e)}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"An error occurred: {str(e)}", exc_info=args.debug)
        sys.exit(1)


if __name__ == "__main__":
    main()
