"""Fetch a player's match history and store the matches not seen before."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..database import Database
from ..models import Match, MatchInfo, Summoner, utcnow
from ..riot_api import RiotAPIClient, RiotAPIError, RateLimitedError, ApiTimeoutError
from ..schemas import MatchDto, Participant, parse_participants, from_epoch_ms

logger = logging.getLogger(__name__)


@dataclass
class MatchSyncResult:
    listed: int = 0
    stored: int = 0
    failed: List[str] = field(default_factory=list)


def fetch_match_ids(api_client: RiotAPIClient, session: Session, puuid: str, region: str,
                    exhaustive: bool = True) -> List[str]:
    """List the player's match ids that are not stored yet, newest first.

    Exhaustive mode pages through the whole history window; best-effort mode
    only reads the first page.
    """
    page_size = settings.MATCH_PAGE_SIZE
    remaining = settings.MATCH_HISTORY_LIMIT if exhaustive else page_size
    start_time = int(settings.MATCH_HISTORY_START.replace(tzinfo=timezone.utc).timestamp())

    match_ids = []
    start = 0
    while remaining > 0:
        count = min(page_size, remaining)
        page = api_client.get_match_ids_by_puuid(puuid, region, start=start, count=count, start_time=start_time)
        if not page:
            break
        match_ids.extend(page)
        if len(page) < count:
            break
        start += count
        remaining -= count

    logger.debug(f"Riot lists {len(match_ids)} matches for {puuid}")

    # Drop duplicates, keep order
    match_ids = list(dict.fromkeys(match_ids))
    existing = Match.existing_ids(session, match_ids)
    return [match_id for match_id in match_ids if match_id not in existing]


def _upsert_participant_summoner(session: Session, participant: Participant, region: str,
                                 game_date: datetime) -> Summoner:
    """Create a minimal summoner row for a participant, or refresh it from a newer game."""
    summoner = session.get(Summoner, participant.puuid)
    if summoner is None:
        summoner = Summoner(
            puuid=participant.puuid,
            region=region,
            game_name=participant.riot_id_game_name,
            tag_line=participant.riot_id_tagline,
            summoner_level=participant.summoner_level or 0,
            profile_icon_id=participant.profile_icon or 0,
            revision_date=game_date,
            created_at=utcnow(),
            updated_at=game_date,
        )
        session.add(summoner)
    elif game_date > summoner.updated_at:
        summoner.game_name = participant.riot_id_game_name
        summoner.tag_line = participant.riot_id_tagline
        if participant.summoner_level is not None:
            summoner.summoner_level = participant.summoner_level
        if participant.profile_icon is not None:
            summoner.profile_icon_id = participant.profile_icon
        summoner.revision_date = game_date
        summoner.updated_at = game_date
    return summoner


def store_match(session: Session, payload: dict, region: str) -> Optional[Match]:
    """Store one match payload with its participants.

    Returns None if the match is already stored (matches never change).
    """
    match_dto = MatchDto.model_validate(payload)
    game_id = match_dto.metadata.match_id
    if session.get(Match, game_id) is not None:
        return None

    info = match_dto.info
    participants = parse_participants(info.participants, game_id)
    game_start = from_epoch_ms(info.game_start_timestamp) or from_epoch_ms(info.game_creation)
    game_end = from_epoch_ms(info.game_end_timestamp) or game_start + timedelta(seconds=info.game_duration)

    linked = []
    for participant in participants:
        if participant.puuid in linked:
            continue
        _upsert_participant_summoner(session, participant, region, game_start)
        linked.append(participant.puuid)

    match = Match(game_id=game_id)
    match.info = MatchInfo(
        game_id=game_id,
        game_creation=from_epoch_ms(info.game_creation) or game_start,
        game_duration=info.game_duration,
        game_start_timestamp=game_start,
        game_end_timestamp=game_end,
        game_mode=info.game_mode,
        game_name=info.game_name,
        game_type=info.game_type,
        game_version=info.game_version,
        map_id=info.map_id,
        platform_id=info.platform_id,
        queue_id=info.queue_id,
        tournament_code=info.tournament_code or '',
        participants=[p.model_dump(by_alias=True) for p in participants],
        teams=info.teams,
    )
    session.add(match)
    session.flush()

    Match.link_summoners(session, game_id, linked)
    return match


def update_matches(api_client: RiotAPIClient, database: Database, puuid: str, region: str,
                   exhaustive: bool = True) -> MatchSyncResult:
    """Fetch and store every new match for a player.

    Each match is stored in its own transaction. A match that cannot be
    fetched or stored is logged and skipped; throttling and timeouts abort
    the sync so the job can be retried.
    """
    with database.session() as session:
        match_ids = fetch_match_ids(api_client, session, puuid, region, exhaustive=exhaustive)

    result = MatchSyncResult(listed=len(match_ids))
    logger.info(f"Found {len(match_ids)} new matches for {puuid}")

    for match_id in match_ids:
        try:
            payload = api_client.get_match_by_id(match_id, region)
            with database.session() as session:
                if store_match(session, payload, region) is not None:
                    result.stored += 1
        except (RateLimitedError, ApiTimeoutError):
            raise
        except (RiotAPIError, ValidationError, SQLAlchemyError) as e:
            logger.error(f"Failed to store match {match_id}: {str(e)}")
            result.failed.append(match_id)

    logger.info(f"Stored {result.stored}/{result.listed} matches for {puuid} ({len(result.failed)} failed)")
    return result
