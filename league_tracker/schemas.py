"""Pydantic models for Riot API payloads.

Only the fields the tracker relies on are declared; everything else Riot
sends is kept (``extra='allow'``) so raw payloads round-trip into the JSON
columns untouched.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


def from_epoch_ms(value: Optional[int]) -> Optional[datetime]:
    """Convert a Riot epoch-millis timestamp to a naive UTC datetime."""
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)


class RiotModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='allow')


class AccountDto(RiotModel):
    puuid: str
    game_name: Optional[str] = Field(default=None, alias='gameName')
    tag_line: Optional[str] = Field(default=None, alias='tagLine')

    @property
    def riot_id(self) -> str:
        return f"{self.game_name}#{self.tag_line}"


class SummonerDto(RiotModel):
    puuid: str
    profile_icon_id: int = Field(alias='profileIconId')
    summoner_level: int = Field(alias='summonerLevel')
    revision_date: int = Field(default=0, alias='revisionDate')


class Participant(RiotModel):
    """One player's statistics inside a match."""
    puuid: str
    champion_id: int = Field(alias='championId')
    win: bool
    kills: int = 0
    deaths: int
    assists: int = 0
    placement: Optional[int] = None
    team_id: int = Field(default=0, alias='teamId')
    riot_id_game_name: Optional[str] = Field(default=None, alias='riotIdGameName')
    riot_id_tagline: Optional[str] = Field(default=None, alias='riotIdTagline')
    summoner_level: Optional[int] = Field(default=None, alias='summonerLevel')
    profile_icon: Optional[int] = Field(default=None, alias='profileIcon')


def parse_participants(raw: Iterable[Any], game_id: str = "") -> List[Participant]:
    """Validate participant records, dropping malformed ones with a warning."""
    participants = []
    for index, record in enumerate(raw or []):
        try:
            participants.append(Participant.model_validate(record))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed participant #{index} in match {game_id}: "
                f"{e.error_count()} validation error(s)"
            )
    return participants


class MatchInfoDto(RiotModel):
    game_creation: int = Field(alias='gameCreation')
    game_duration: int = Field(alias='gameDuration')
    game_start_timestamp: int = Field(alias='gameStartTimestamp')
    game_end_timestamp: Optional[int] = Field(default=None, alias='gameEndTimestamp')
    game_mode: str = Field(alias='gameMode')
    game_name: str = Field(default='', alias='gameName')
    game_type: str = Field(alias='gameType')
    game_version: str = Field(default='', alias='gameVersion')
    map_id: int = Field(alias='mapId')
    platform_id: str = Field(default='', alias='platformId')
    queue_id: int = Field(alias='queueId')
    tournament_code: Optional[str] = Field(default=None, alias='tournamentCode')
    participants: List[Dict[str, Any]] = Field(default_factory=list)
    teams: List[Dict[str, Any]] = Field(default_factory=list)


class MatchMetadataDto(RiotModel):
    match_id: str = Field(alias='matchId')


class MatchDto(RiotModel):
    metadata: MatchMetadataDto
    info: MatchInfoDto


class ChampionMasteryDto(RiotModel):
    champion_id: int = Field(alias='championId')
    champion_level: int = Field(alias='championLevel')
    champion_points: int = Field(alias='championPoints')
    last_play_time: int = Field(alias='lastPlayTime')
    tokens_earned: int = Field(default=0, alias='tokensEarned')
    champion_points_until_next_level: int = Field(default=0, alias='championPointsUntilNextLevel')
    champion_points_since_last_level: int = Field(default=0, alias='championPointsSinceLastLevel')


class PointsDto(RiotModel):
    level: str
    current: int
    max: int
    percentile: Optional[float] = None


class PreferencesDto(RiotModel):
    banner_accent: str = Field(default='', alias='bannerAccent')
    title: str = ''
    challenge_ids: List[int] = Field(default_factory=list, alias='challengeIds')


class ChallengeInfoDto(RiotModel):
    challenge_id: int = Field(alias='challengeId')
    percentile: Optional[float] = None
    level: Optional[str] = None
    value: Optional[float] = None
    achieved_time: Optional[int] = Field(default=None, alias='achievedTime')


class PlayerChallengesDto(RiotModel):
    total_points: PointsDto = Field(alias='totalPoints')
    category_points: Dict[str, PointsDto] = Field(default_factory=dict, alias='categoryPoints')
    preferences: PreferencesDto = Field(default_factory=PreferencesDto)
    challenges: List[ChallengeInfoDto] = Field(default_factory=list)


class LocalizedNameDto(RiotModel):
    name: str = ''
    description: str = ''
    short_description: str = Field(default='', alias='shortDescription')


class ChallengeConfigDto(RiotModel):
    id: int
    state: Optional[str] = None
    leaderboard: bool = False
    end_timestamp: Optional[int] = Field(default=None, alias='endTimestamp')
    thresholds: Dict[str, Any] = Field(default_factory=dict)
    parent_id: Optional[int] = Field(default=None, alias='parentId')
    localized_names: Dict[str, LocalizedNameDto] = Field(default_factory=dict, alias='localizedNames')


class ChampionInfoDto(RiotModel):
    attack: int = 0
    defense: int = 0
    magic: int = 0
    difficulty: int = 0


class ChampionImageDto(RiotModel):
    full: str = ''
    sprite: str = ''
    group: str = ''
    x: int = 0
    y: int = 0
    w: int = 0
    h: int = 0


class ChampionDataDto(RiotModel):
    """A champion entry from Data Dragon's champion.json."""
    id: str
    key: str
    name: str
    title: str = ''
    blurb: str = ''
    version: Optional[str] = None
    info: ChampionInfoDto = Field(default_factory=ChampionInfoDto)
    image: ChampionImageDto = Field(default_factory=ChampionImageDto)
    tags: List[str] = Field(default_factory=list)
    partype: str = ''
    stats: Dict[str, float] = Field(default_factory=dict)
