"""The custom challenges tracked per player and what each one counts."""
from datetime import datetime
from enum import Enum

from sqlalchemy import Table

from ..models import (
    challenge_heroes, challenges_champion_ocean, challenges_champion_ocean_2024_split3,
    challenges_adapt_to_all_situations, challenges_invincible,
)
from ..queries import MatchFilter, SUMMONERS_RIFT, ARENA
from ..schemas import Participant

SPLIT_3_START = datetime(2024, 9, 18)
SPLIT_3 = MatchFilter(start_from=SPLIT_3_START)


class ChallengeKind(str, Enum):
    """A locally computed challenge: a match subset, a predicate and a join table."""
    JACK_OF_ALL_CHAMPS = 'JackOfAllChamps'
    CHAMPION_OCEAN = 'ChampionOcean'
    CHAMPION_OCEAN_2024_SPLIT_3 = 'ChampionOcean2024Split3'
    ADAPT_TO_ALL_SITUATIONS = 'AdaptToAllSituations'
    INVINCIBLE = 'Invincible'

    @property
    def match_filter(self) -> MatchFilter:
        return match_filter_for(self)

    @property
    def table(self) -> Table:
        return table_for(self)

    def qualifies(self, participant: Participant) -> bool:
        return participant_qualifies(self, participant)


def match_filter_for(kind: ChallengeKind) -> MatchFilter:
    if kind is ChallengeKind.JACK_OF_ALL_CHAMPS:
        return SUMMONERS_RIFT
    if kind is ChallengeKind.CHAMPION_OCEAN:
        return ARENA
    if kind is ChallengeKind.CHAMPION_OCEAN_2024_SPLIT_3:
        return SPLIT_3
    if kind is ChallengeKind.ADAPT_TO_ALL_SITUATIONS:
        return ARENA
    if kind is ChallengeKind.INVINCIBLE:
        return SUMMONERS_RIFT
    raise ValueError(f"Unhandled challenge kind: {kind}")


def participant_qualifies(kind: ChallengeKind, participant: Participant) -> bool:
    if kind is ChallengeKind.JACK_OF_ALL_CHAMPS:
        return participant.win
    if kind is ChallengeKind.CHAMPION_OCEAN:
        return participant.win
    if kind is ChallengeKind.CHAMPION_OCEAN_2024_SPLIT_3:
        return participant.win
    if kind is ChallengeKind.ADAPT_TO_ALL_SITUATIONS:
        return participant.placement == 1
    if kind is ChallengeKind.INVINCIBLE:
        return participant.win and participant.deaths == 0
    raise ValueError(f"Unhandled challenge kind: {kind}")


def table_for(kind: ChallengeKind) -> Table:
    if kind is ChallengeKind.JACK_OF_ALL_CHAMPS:
        return challenge_heroes
    if kind is ChallengeKind.CHAMPION_OCEAN:
        return challenges_champion_ocean
    if kind is ChallengeKind.CHAMPION_OCEAN_2024_SPLIT_3:
        return challenges_champion_ocean_2024_split3
    if kind is ChallengeKind.ADAPT_TO_ALL_SITUATIONS:
        return challenges_adapt_to_all_situations
    if kind is ChallengeKind.INVINCIBLE:
        return challenges_invincible
    raise ValueError(f"Unhandled challenge kind: {kind}")
