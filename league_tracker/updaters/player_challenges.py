"""Store Riot's own challenge scoring for a player."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models import ChallengesDetails, TotalPoints, CategoryPoints, Preferences, Challenge, utcnow
from ..models.base import upsert_insert
from ..riot_api import RiotAPIClient
from ..schemas import PlayerChallengesDto, from_epoch_ms

logger = logging.getLogger(__name__)


def _upsert(session: Session, model, keys: dict, values: dict) -> None:
    stmt = upsert_insert(session, model).values(**keys, **values)
    index_elements = [getattr(model, name) for name in keys]
    session.execute(stmt.on_conflict_do_update(index_elements=index_elements, set_=values))


def store_player_challenges(session: Session, puuid: str, data: PlayerChallengesDto,
                            now: Optional[datetime] = None) -> int:
    """Upsert totals, category points, preferences and per-challenge scores.

    Returns:
        Number of challenge rows written
    """
    now = now or utcnow()
    stmt = upsert_insert(session, ChallengesDetails).values(puuid=puuid, created_at=now, updated_at=now)
    session.execute(stmt.on_conflict_do_update(index_elements=[ChallengesDetails.puuid], set_={'updated_at': now}))

    key = {'challenges_details_id': puuid}
    _upsert(session, TotalPoints, key, {
        'level': data.total_points.level,
        'current': data.total_points.current,
        'max': data.total_points.max,
    })

    for category, points in data.category_points.items():
        _upsert(session, CategoryPoints, {**key, 'category': category}, {
            'level': points.level,
            'current': points.current,
            'max': points.max,
            'percentile': points.percentile if points.percentile is not None else -1,
        })

    _upsert(session, Preferences, key, {
        'banner_accent': data.preferences.banner_accent,
        'title': data.preferences.title,
        'challenge_ids': data.preferences.challenge_ids,
    })

    for challenge in data.challenges:
        _upsert(session, Challenge, {**key, 'challenge_id': challenge.challenge_id}, {
            'percentile': challenge.percentile,
            'level': challenge.level,
            'value': challenge.value,
            'achieved_time': from_epoch_ms(challenge.achieved_time),
        })

    return len(data.challenges)


def update_player_challenges(api_client: RiotAPIClient, session: Session, puuid: str, region: str) -> int:
    data = PlayerChallengesDto.model_validate(api_client.get_player_challenges(puuid, region))
    count = store_player_challenges(session, puuid, data)
    logger.info(f"Stored {count} challenge scores for {puuid}")
    return count
