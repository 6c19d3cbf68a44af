"""Per-request refresh workflow built on the job queue."""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from ..config import settings, normalize_region
from ..database import Database
from ..riot_api import RiotAPIClient
from ..updaters import (
    SummonerResolver, update_champion_details, update_challenges_config, update_mastery,
    update_matches, update_player_challenges,
)
from ..challenges import run_all_challenge_updates, AggregationError
from .queue import JobQueue, JobHandle, JobName, JobTimeoutError

logger = logging.getLogger(__name__)

CRITICAL_JOBS: FrozenSet[JobName] = frozenset({
    JobName.UPDATE_SUMMONER,
    JobName.UPDATE_CHAMPION_DETAILS,
    JobName.UPDATE_CHALLENGES_CONFIG,
    JobName.UPDATE_MASTERY,
})
MATCH_JOBS: FrozenSet[JobName] = frozenset({
    JobName.UPDATE_MATCHES,
    JobName.UPDATE_CHALLENGES,
    JobName.RUN_CHALLENGES_COMPUTATION,
})


class JobStatus(str, Enum):
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    TIMED_OUT = 'timed_out'
    PENDING = 'pending'


@dataclass
class JobOutcome:
    job: JobName
    job_id: str
    status: JobStatus
    error: Optional[str] = None
    value: Any = None


@dataclass
class PipelineOutcome:
    """What happened to each job of one refresh request.

    ``success`` only reflects the jobs the caller awaited; jobs that were
    not awaited are reported as pending.
    """
    success: bool
    puuid: Optional[str] = None
    outcomes: List[JobOutcome] = field(default_factory=list)

    def outcome_for(self, job: JobName) -> Optional[JobOutcome]:
        return next((outcome for outcome in self.outcomes if outcome.job == job), None)

    @property
    def failed(self) -> List[JobOutcome]:
        return [o for o in self.outcomes if o.status in (JobStatus.FAILED, JobStatus.TIMED_OUT)]

    def describe(self) -> str:
        if not self.failed:
            return "all awaited jobs succeeded"
        return ', '.join(f"{o.job.value} {o.status.value}" + (f" ({o.error})" if o.error else '')
                         for o in self.failed)


def make_job_id(job: JobName, game_name: str, tag_line: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{job.value}-{game_name}#{tag_line}-{timestamp_ms}"


def default_handlers(api_client: RiotAPIClient, database: Database,
                     resolver: SummonerResolver) -> Dict[JobName, Callable[[dict], Any]]:
    """Job handlers performing the refresh work against Riot and the database.

    Payloads carry ``game_name``, ``tag_line``, ``region`` and ``puuid``;
    ``update-matches`` also reads ``exhaustive``.
    """

    def update_summoner(payload):
        resolution = resolver.resolve(payload['game_name'], payload['tag_line'], payload['region'],
                                      force_refresh=True)
        return resolution.summoner.puuid

    def champion_details(payload):
        with database.session() as session:
            return update_champion_details(api_client, session)

    def challenges_config(payload):
        with database.session() as session:
            return update_challenges_config(api_client, session, payload['region'])

    def mastery(payload):
        with database.session() as session:
            return update_mastery(api_client, session, payload['puuid'], payload['region'])

    def matches(payload):
        return update_matches(api_client, database, payload['puuid'], payload['region'],
                              exhaustive=payload.get('exhaustive', True))

    def challenges(payload):
        result = run_all_challenge_updates(database, payload['game_name'], payload['tag_line'], payload['region'])
        if not result.success:
            raise AggregationError('; '.join(r.message for r in result.failed))
        return result

    def challenges_computation(payload):
        with database.session() as session:
            return update_player_challenges(api_client, session, payload['puuid'], payload['region'])

    return {
        JobName.UPDATE_SUMMONER: update_summoner,
        JobName.UPDATE_CHAMPION_DETAILS: champion_details,
        JobName.UPDATE_CHALLENGES_CONFIG: challenges_config,
        JobName.UPDATE_MASTERY: mastery,
        JobName.UPDATE_MATCHES: matches,
        JobName.UPDATE_CHALLENGES: challenges,
        JobName.RUN_CHALLENGES_COMPUTATION: challenges_computation,
    }


class RefreshPipeline:
    """Enqueues the refresh jobs for a player and waits for the ones asked for."""

    def __init__(
        self,
        job_queue: JobQueue,
        resolver: SummonerResolver,
        critical_timeout: Optional[float] = None,
        match_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.queue = job_queue
        self.resolver = resolver
        self.critical_timeout = critical_timeout or settings.CRITICAL_JOB_TIMEOUT
        self.match_timeout = match_timeout or settings.MATCH_JOB_TIMEOUT
        self.clock = clock

    def refresh(
        self,
        game_name: str,
        tag_line: str,
        region: str,
        include_matches: bool = True,
        await_matches: bool = False,
        exhaustive_matches: Optional[bool] = None,
        await_jobs: Optional[Iterable[JobName]] = None,
        timeout: Optional[float] = None,
    ) -> PipelineOutcome:
        """Refresh everything known about a player.

        The player is resolved first, so an unknown Riot ID raises
        ``NotFoundError`` and throttling raises ``RateLimitedError`` before
        any job is enqueued. Jobs already committed are never rolled back
        when a later one fails.

        Args:
            include_matches: Enqueue the match sync; the challenge jobs then
                wait for it to finish
            await_matches: Also wait for the match and challenge jobs
            exhaustive_matches: Walk the whole match history rather than one
                page; defaults to ``await_matches``
            await_jobs: Explicit set of jobs to wait for, overriding the default
            timeout: Per-job wait, overriding the configured timeouts
        """
        region = normalize_region(region)
        if exhaustive_matches is None:
            exhaustive_matches = await_matches
        if await_jobs is None:
            await_jobs = CRITICAL_JOBS | MATCH_JOBS if await_matches else CRITICAL_JOBS
        await_jobs = frozenset(JobName(job) for job in await_jobs)

        resolution = self.resolver.resolve(game_name, tag_line, region)
        summoner = resolution.summoner
        # Riot's current name, in case the player renamed
        game_name = summoner.game_name or game_name
        tag_line = summoner.tag_line or tag_line

        payload = {
            'game_name': game_name,
            'tag_line': tag_line,
            'region': region,
            'puuid': summoner.puuid,
            'exhaustive': exhaustive_matches,
        }
        timestamp_ms = int(self.clock() * 1000)

        def enqueue(job: JobName, depends_on=()) -> JobHandle:
            return self.queue.enqueue(job, dict(payload), job_id=make_job_id(job, game_name, tag_line, timestamp_ms),
                                      depends_on=depends_on)

        handles = [
            enqueue(JobName.UPDATE_SUMMONER),
            enqueue(JobName.UPDATE_CHAMPION_DETAILS),
            enqueue(JobName.UPDATE_CHALLENGES_CONFIG),
            enqueue(JobName.UPDATE_MASTERY),
        ]
        match_handle = enqueue(JobName.UPDATE_MATCHES) if include_matches else None
        if match_handle is not None:
            handles.append(match_handle)
        summoner_handle, champions_handle = handles[0], handles[1]
        after_matches = [summoner_handle] + ([match_handle] if match_handle is not None else [])
        # Achievement rows reference champion_details
        handles.append(enqueue(JobName.UPDATE_CHALLENGES, depends_on=after_matches + [champions_handle]))
        handles.append(enqueue(JobName.RUN_CHALLENGES_COMPUTATION, depends_on=after_matches))

        logger.info(f"Enqueued {len(handles)} refresh jobs for {game_name}#{tag_line} ({region})")

        outcomes = [self._await(handle, handle.name in await_jobs, timeout) for handle in handles]
        awaited = [outcome for outcome in outcomes if outcome.job in await_jobs]
        success = all(outcome.status is JobStatus.SUCCEEDED for outcome in awaited)

        result = PipelineOutcome(success=success, puuid=summoner.puuid, outcomes=outcomes)
        if not success:
            logger.error(f"Refresh of {game_name}#{tag_line} ({region}) failed: {result.describe()}")
        return result

    def _await(self, handle: JobHandle, wait: bool, timeout: Optional[float]) -> JobOutcome:
        if not wait:
            return JobOutcome(handle.name, handle.job_id, JobStatus.PENDING)

        if timeout is None:
            timeout = self.match_timeout if handle.name in MATCH_JOBS else self.critical_timeout
        try:
            result = handle.await_completion(timeout)
        except JobTimeoutError as e:
            return JobOutcome(handle.name, handle.job_id, JobStatus.TIMED_OUT, error=str(e))

        if result.success:
            return JobOutcome(handle.name, handle.job_id, JobStatus.SUCCEEDED, value=result.value)
        return JobOutcome(handle.name, handle.job_id, JobStatus.FAILED, error=str(result.error))
