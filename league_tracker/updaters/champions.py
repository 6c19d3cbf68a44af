"""Sync champion reference data from Data Dragon."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..models import ChampionDetails
from ..riot_api import RiotAPIClient
from ..schemas import ChampionDataDto

logger = logging.getLogger(__name__)


def latest_version(api_client: RiotAPIClient) -> str:
    versions = api_client.get_data_dragon_versions()
    if not versions:
        raise ValueError("Data Dragon returned no versions")
    return versions[0]


def flatten_champion(champion: ChampionDataDto, version: Optional[str] = None) -> Dict[str, Any]:
    """Flatten a Data Dragon champion entry into a ``champion_details`` row.

    Data Dragon's ``key`` is the numeric champion id used by match and
    mastery payloads, while its ``id`` is the string key ('MonkeyKing').
    """
    return {
        'id': int(champion.key),
        'version': champion.version or version,
        'key': champion.id,
        'name': champion.name,
        'title': champion.title,
        'blurb': champion.blurb,
        'attack': champion.info.attack,
        'defense': champion.info.defense,
        'magic': champion.info.magic,
        'difficulty': champion.info.difficulty,
        'full': champion.image.full,
        'sprite': champion.image.sprite,
        'group': champion.image.group,
        'x': champion.image.x,
        'y': champion.image.y,
        'w': champion.image.w,
        'h': champion.image.h,
        'tags': champion.tags,
        'partype': champion.partype,
        'stats': champion.stats,
    }


def update_champion_details(api_client: RiotAPIClient, session: Session, version: Optional[str] = None) -> int:
    """Upsert every champion of the given (default: latest) patch.

    Returns:
        Number of champions written
    """
    version = version or latest_version(api_client)
    payload = api_client.get_champion_details(version)

    rows = []
    for entry in (payload.get('data') or {}).values():
        rows.append(flatten_champion(ChampionDataDto.model_validate(entry), version))

    count = ChampionDetails.upsert_many(session, rows)
    logger.info(f"Stored {count} champions for patch {version}")
    return count
