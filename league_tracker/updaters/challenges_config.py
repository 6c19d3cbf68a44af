"""Sync global challenge metadata and its English localization."""
import logging

from sqlalchemy.orm import Session

from ..models import ChallengesConfig, ChallengeLocalization
from ..models.base import upsert_insert
from ..riot_api import RiotAPIClient
from ..schemas import ChallengeConfigDto, from_epoch_ms

logger = logging.getLogger(__name__)

LANGUAGE = 'en_US'


def upsert_config(session: Session, config: ChallengeConfigDto) -> None:
    values = {
        'state': config.state,
        'leaderboard': config.leaderboard,
        'end_timestamp': from_epoch_ms(config.end_timestamp),
        'thresholds': config.thresholds,
        'parent_id': config.parent_id,
    }
    stmt = upsert_insert(session, ChallengesConfig).values(id=config.id, **values)
    session.execute(stmt.on_conflict_do_update(index_elements=[ChallengesConfig.id], set_=values))

    localized = config.localized_names.get(LANGUAGE)
    if localized is None:
        logger.debug(f"Challenge {config.id} has no {LANGUAGE} localization")
        return

    loc_values = {
        'name': localized.name,
        'description': localized.description,
        'short_description': localized.short_description,
    }
    stmt = upsert_insert(session, ChallengeLocalization).values(id=config.id, language=LANGUAGE, **loc_values)
    session.execute(stmt.on_conflict_do_update(
        index_elements=[ChallengeLocalization.id, ChallengeLocalization.language],
        set_=loc_values,
    ))


def update_challenges_config(api_client: RiotAPIClient, session: Session, region: str) -> int:
    """Refresh every challenge config from Riot. Returns the number stored."""
    configs = [ChallengeConfigDto.model_validate(raw) for raw in api_client.get_challenges_config(region)]
    for config in configs:
        upsert_config(session, config)

    logger.info(f"Stored {len(configs)} challenge configs")
    return len(configs)
