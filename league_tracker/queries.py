"""Read-side queries used by the CLI and by the challenge engine."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, contains_eager, selectinload

from .config import normalize_region
from .models import (
    Match, MatchInfo, match_summoners, Summoner, ChampionMastery, ChampionDetails,
    ChallengesDetails, Challenge, ChallengesConfig, ChallengeLocalization,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchFilter:
    """Criteria selecting a subset of a player's stored matches.

    Every field left as None matches anything.
    """
    map_ids: Optional[Tuple[int, ...]] = None
    game_mode: Optional[str] = None
    game_type: Optional[str] = None
    queue_ids_not_in: Optional[Tuple[int, ...]] = None
    start_from: Optional[datetime] = None

    def accepts(self, info: MatchInfo) -> bool:
        """Apply the same criteria in Python to an already loaded match."""
        if self.map_ids is not None and info.map_id not in self.map_ids:
            return False
        if self.game_mode is not None and info.game_mode != self.game_mode:
            return False
        if self.game_type is not None and info.game_type != self.game_type:
            return False
        if self.queue_ids_not_in is not None and info.queue_id in self.queue_ids_not_in:
            return False
        if self.start_from is not None and info.game_start_timestamp < self.start_from:
            return False
        return True

    def apply(self, query):
        if self.map_ids is not None:
            query = query.filter(MatchInfo.map_id.in_(self.map_ids))
        if self.game_mode is not None:
            query = query.filter(MatchInfo.game_mode == self.game_mode)
        if self.game_type is not None:
            query = query.filter(MatchInfo.game_type == self.game_type)
        if self.queue_ids_not_in is not None:
            query = query.filter(MatchInfo.queue_id.notin_(self.queue_ids_not_in))
        if self.start_from is not None:
            query = query.filter(MatchInfo.game_start_timestamp >= self.start_from)
        return query


# Co-op vs AI queues
COOP_VS_AI_QUEUES = tuple(range(800, 900, 10))

ALL_MATCHES = MatchFilter()
SUMMONERS_RIFT = MatchFilter(
    map_ids=(1, 2, 11),
    game_mode='CLASSIC',
    game_type='MATCHED_GAME',
    queue_ids_not_in=COOP_VS_AI_QUEUES,
    start_from=datetime(2023, 1, 1),
)
ARENA = MatchFilter(
    map_ids=(30,),
    game_mode='CHERRY',
    game_type='MATCHED_GAME',
    start_from=datetime(2024, 1, 1),
)


def get_matches(session: Session, puuid: str, match_filter: MatchFilter = ALL_MATCHES,
                limit: Optional[int] = None) -> List[Match]:
    """Stored matches the player took part in, newest first, with info loaded."""
    query = (
        session.query(Match)
        .join(Match.info)
        .join(match_summoners, match_summoners.c.game_id == Match.game_id)
        .filter(match_summoners.c.puuid == puuid)
        .options(contains_eager(Match.info))
    )
    query = match_filter.apply(query).order_by(MatchInfo.game_start_timestamp.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_sr_matches(session: Session, puuid: str) -> List[Match]:
    return get_matches(session, puuid, SUMMONERS_RIFT)


def get_arena_matches(session: Session, puuid: str) -> List[Match]:
    return get_matches(session, puuid, ARENA)


def get_player_challenges_progress(session: Session, game_name: str, tag_line: str,
                                   region: str) -> Optional[Dict[int, Dict[str, Any]]]:
    """Riot challenge scores for a player, keyed by challenge id.

    Returns None when the player (or their challenge record) was never
    synced, and an empty dict when the record exists but holds no scores.
    """
    summoner = Summoner.get_by_riot_id(session, game_name, tag_line, normalize_region(region))
    if summoner is None:
        return None

    details = session.get(ChallengesDetails, summoner.puuid)
    if details is None:
        return None

    rows = session.query(Challenge).filter(Challenge.challenges_details_id == details.puuid).all()
    return {
        row.challenge_id: {
            'challenge_id': row.challenge_id,
            'percentile': row.percentile,
            'level': row.level,
            'value': row.value,
            'achieved_time': row.achieved_time,
        }
        for row in rows
    }


def get_challenge_champions(session: Session, kind, game_name: str, tag_line: str,
                            region: str) -> List[ChampionDetails]:
    """Champions recorded in ``kind``'s achievement table for a player, by name."""
    summoner = Summoner.get_by_riot_id(session, game_name, tag_line, normalize_region(region))
    if summoner is None:
        return []

    table = kind.table
    return (
        session.query(ChampionDetails)
        .join(table, table.c.champion_id == ChampionDetails.id)
        .filter(table.c.puuid == summoner.puuid)
        .order_by(ChampionDetails.name)
        .all()
    )


def get_challenges_config(session: Session) -> List[Dict[str, Any]]:
    """All challenge configs with their en_US name and descriptions."""
    configs = (
        session.query(ChallengesConfig)
        .options(selectinload(ChallengesConfig.localizations))
        .order_by(ChallengesConfig.id)
        .all()
    )

    result = []
    for config in configs:
        localization: Optional[ChallengeLocalization] = next(
            (loc for loc in config.localizations if loc.language == 'en_US'), None
        )
        entry = config.to_dict()
        entry['localization'] = localization.to_dict() if localization else None
        result.append(entry)
    return result


def get_last_mastery_update(session: Session, puuid: str) -> Optional[datetime]:
    return ChampionMastery.last_update(session, puuid)


def get_data_dragon_version(session: Session) -> Optional[str]:
    return ChampionDetails.current_version(session)


LEADERBOARD_SIZE = 100
# Rows kept from the top when the highlighted player ranks lower
LEADERBOARD_HEAD = 75
LEADERBOARD_AREA = 25


def _leaderboard_query(session: Session, challenge_id: int):
    return (
        session.query(Challenge, Summoner)
        .join(ChallengesDetails, Challenge.challenges_details_id == ChallengesDetails.puuid)
        .join(Summoner, ChallengesDetails.puuid == Summoner.puuid)
        .filter(Challenge.challenge_id == challenge_id, Challenge.value.isnot(None))
        .order_by(Challenge.value.desc(), Summoner.puuid)
    )


def _leaderboard_entry(challenge: Challenge, summoner: Summoner) -> Dict[str, Any]:
    return {
        'puuid': summoner.puuid,
        'game_name': summoner.game_name,
        'tag_line': summoner.tag_line,
        'region': summoner.region,
        'profile_icon_id': summoner.profile_icon_id,
        'value': challenge.value,
        'level': challenge.level,
        'percentile': challenge.percentile,
    }


def get_challenge_leaderboard(session: Session, challenge_id: int, limit: int = LEADERBOARD_SIZE,
                              offset: int = 0) -> List[Dict[str, Any]]:
    """Players with a score for ``challenge_id``, best value first."""
    rows = _leaderboard_query(session, challenge_id).offset(offset).limit(limit).all()
    return [_leaderboard_entry(challenge, summoner) for challenge, summoner in rows]


def get_challenge_rank(session: Session, challenge_id: int, puuid: str) -> Optional[int]:
    """1-based rank of a player in one challenge; tied values share a rank.

    Returns None when the player has no score for the challenge.
    """
    value = (
        session.query(Challenge.value)
        .filter(Challenge.challenge_id == challenge_id, Challenge.challenges_details_id == puuid)
        .scalar()
    )
    if value is None:
        return None

    higher = (
        session.query(func.count())
        .select_from(Challenge)
        .filter(Challenge.challenge_id == challenge_id, Challenge.value > value)
        .scalar()
    )
    return higher + 1


def get_challenge_leaderboard_with_highlight(
    session: Session,
    challenge_id: int,
    game_name: Optional[str] = None,
    tag_line: Optional[str] = None,
    region: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], bool]:
    """The top of a leaderboard, plus the rows around one player.

    When the player is outside the top ``LEADERBOARD_SIZE`` the result is the
    first ``LEADERBOARD_HEAD`` rows followed by ``LEADERBOARD_AREA`` rows
    centred on them, and the second item is True. Otherwise it is the plain
    top of the leaderboard and False.
    """
    top = get_challenge_leaderboard(session, challenge_id, limit=LEADERBOARD_SIZE)
    if not (game_name and tag_line and region):
        return top, False

    summoner = Summoner.get_by_riot_id(session, game_name, tag_line, normalize_region(region))
    if summoner is None or any(entry['puuid'] == summoner.puuid for entry in top):
        return top, False

    rank = get_challenge_rank(session, challenge_id, summoner.puuid)
    if rank is None:
        return top, False

    around = max(0, rank - 1 - LEADERBOARD_AREA // 2)
    area = get_challenge_leaderboard(session, challenge_id, limit=LEADERBOARD_AREA, offset=around)
    logger.debug(f"{summoner.riot_id} ranks {rank} in challenge {challenge_id}")
    return top[:LEADERBOARD_HEAD] + area, True
