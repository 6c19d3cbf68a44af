"""Rebuild a player's achievement sets from their stored match history."""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import normalize_region
from ..database import Database
from ..models import Challenges, ChampionDetails, Match, Summoner
from ..models.base import upsert_insert
from ..queries import get_matches
from .kinds import ChallengeKind

logger = logging.getLogger(__name__)


class AggregationError(Exception):
    """One or more achievement sets could not be rebuilt."""


_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(puuid: str) -> threading.Lock:
    with _locks_guard:
        return _locks.setdefault(puuid, threading.Lock())


@dataclass
class ChallengeUpdateResult:
    kind: ChallengeKind
    success: bool
    message: str
    champion_ids: Set[int] = field(default_factory=set)


@dataclass
class AggregateResult:
    success: bool
    results: List[ChallengeUpdateResult] = field(default_factory=list)

    @property
    def failed(self) -> List[ChallengeUpdateResult]:
        return [result for result in self.results if not result.success]


def compute_champion_set(matches: Iterable[Match], puuid: str, kind: ChallengeKind) -> Set[int]:
    """Distinct champion ids the player satisfied ``kind`` with.

    Matches outside the kind's subset are ignored, as are other players'
    participations.
    """
    champion_ids = set()
    for match in matches:
        if match.info is None or not kind.match_filter.accepts(match.info):
            continue
        for participant in match.participants:
            if participant.puuid == puuid and kind.qualifies(participant):
                champion_ids.add(participant.champion_id)
    return champion_ids


def replace_achievements(session: Session, puuid: str, kind: ChallengeKind, champion_ids: Set[int]) -> Set[int]:
    """Replace the player's rows in ``kind``'s table with ``champion_ids``.

    Must run inside the caller's transaction. Champion ids with no
    ``champion_details`` row cannot be stored and are skipped.

    Returns:
        The champion ids actually stored
    """
    if session.get_bind().dialect.name == "postgresql":
        session.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {'key': f"challenges:{puuid}"})

    known = set()
    if champion_ids:
        rows = session.query(ChampionDetails.id).filter(ChampionDetails.id.in_(champion_ids)).all()
        known = {row.id for row in rows}
    skipped = champion_ids - known
    if skipped:
        logger.warning(f"Skipping unknown champion ids for {kind.value}: {sorted(skipped)}")

    table = kind.table
    session.execute(table.delete().where(table.c.puuid == puuid))
    session.execute(upsert_insert(session, Challenges).values(puuid=puuid).on_conflict_do_nothing())
    if known:
        rows = [{'puuid': puuid, 'champion_id': champion_id} for champion_id in sorted(known)]
        session.execute(upsert_insert(session, table).values(rows).on_conflict_do_nothing())
    return known


def update_challenge(database: Database, kind: ChallengeKind, game_name: str, tag_line: str,
                     region: str) -> ChallengeUpdateResult:
    """Recompute one achievement set for a player looked up by Riot ID."""
    region = normalize_region(region)
    with database.session() as session:
        summoner: Optional[Summoner] = Summoner.get_by_riot_id(session, game_name, tag_line, region)
        puuid = summoner.puuid if summoner else None

    if puuid is None:
        return ChallengeUpdateResult(kind, False, f"Summoner {game_name}#{tag_line} ({region}) not found")

    try:
        with _lock_for(puuid), database.session() as session:
            matches = get_matches(session, puuid, kind.match_filter)
            champion_ids = compute_champion_set(matches, puuid, kind)
            stored = replace_achievements(session, puuid, kind, champion_ids)
    except SQLAlchemyError as e:
        logger.error(f"Failed to update {kind.value} for {game_name}#{tag_line}: {str(e)}", exc_info=True)
        return ChallengeUpdateResult(kind, False, f"Failed to update {kind.value}")

    logger.info(f"{game_name}#{tag_line} ({region}) updated {kind.value} with {len(stored)} champions")
    return ChallengeUpdateResult(kind, True, f"Updated {kind.value} with {len(stored)} champions", stored)


def run_all_challenge_updates(database: Database, game_name: str, tag_line: str, region: str) -> AggregateResult:
    """Recompute every achievement set; succeeds only if all of them do."""
    results = [update_challenge(database, kind, game_name, tag_line, region) for kind in ChallengeKind]
    aggregate = AggregateResult(success=all(result.success for result in results), results=results)
    if not aggregate.success:
        logger.warning(
            f"Challenge update for {game_name}#{tag_line} failed: "
            f"{', '.join(result.kind.value for result in aggregate.failed)}"
        )
    return aggregate


def update_all_challenge_data(pipeline, database: Database, game_name: str, tag_line: str,
                              region: str, timeout: Optional[float] = None) -> AggregateResult:
    """Refresh the player and their whole match history, then recompute every set."""
    outcome = pipeline.refresh(game_name, tag_line, region, include_matches=True, await_matches=True,
                               timeout=timeout)
    if not outcome.success:
        logger.warning(f"Refresh of {game_name}#{tag_line} incomplete: {outcome.describe()}")
    return run_all_challenge_updates(database, game_name, tag_line, region)
