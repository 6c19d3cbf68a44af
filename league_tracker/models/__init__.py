"""Database models for League Tracker."""
from .base import Base, utcnow
from .summoner import Summoner
from .match import Match, MatchInfo, match_summoners
from .mastery import ChampionMastery
from .champion import ChampionDetails
from .challenges import (
    Challenges, ChallengesDetails, TotalPoints, CategoryPoints, Challenge,
    Preferences, ChallengesConfig, ChallengeLocalization,
    challenge_heroes, challenges_champion_ocean, challenges_champion_ocean_2024_split3,
    challenges_adapt_to_all_situations, challenges_invincible,
)

# Import all models here to ensure they're registered with SQLAlchemy
__all__ = [
    'Base',
    'utcnow',
    'Summoner',
    'Match',
    'MatchInfo',
    'match_summoners',
    'ChampionMastery',
    'ChampionDetails',
    'Challenges',
    'ChallengesDetails',
    'TotalPoints',
    'CategoryPoints',
    'Challenge',
    'Preferences',
    'ChallengesConfig',
    'ChallengeLocalization',
    'challenge_heroes',
    'challenges_champion_ocean',
    'challenges_champion_ocean_2024_split3',
    'challenges_adapt_to_all_situations',
    'challenges_invincible',
]
