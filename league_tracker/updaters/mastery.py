"""Sync champion mastery for one player."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models import ChampionMastery
from ..riot_api import RiotAPIClient
from ..schemas import ChampionMasteryDto, from_epoch_ms

logger = logging.getLogger(__name__)


def update_mastery(api_client: RiotAPIClient, session: Session, puuid: str, region: str,
                   now: Optional[datetime] = None) -> int:
    """Overwrite every mastery row Riot reports for ``puuid``."""
    masteries = [ChampionMasteryDto.model_validate(raw) for raw in api_client.get_champion_masteries(puuid, region)]

    rows = [
        {
            'champion_id': m.champion_id,
            'champion_level': m.champion_level,
            'champion_points': m.champion_points,
            'tokens_earned': m.tokens_earned,
            'last_play_time': from_epoch_ms(m.last_play_time) or datetime(1970, 1, 1),
            'champion_points_until_next_level': m.champion_points_until_next_level,
            'champion_points_since_last_level': m.champion_points_since_last_level,
        }
        for m in masteries
    ]

    count = ChampionMastery.upsert_many(session, puuid, rows, updated_at=now)
    logger.info(f"Stored {count} mastery rows for {puuid}")
    return count
