"""Units of work performed by refresh jobs."""
from .summoner import (
    SummonerResolver, Resolution, NameChangeResult, StaleIdentityError, split_riot_id
)
from .champions import update_champion_details
from .challenges_config import update_challenges_config
from .mastery import update_mastery
from .matches import update_matches, fetch_match_ids, store_match, MatchSyncResult
from .player_challenges import update_player_challenges

__all__ = [
    'SummonerResolver',
    'Resolution',
    'NameChangeResult',
    'StaleIdentityError',
    'split_riot_id',
    'update_champion_details',
    'update_challenges_config',
    'update_mastery',
    'update_matches',
    'fetch_match_ids',
    'store_match',
    'MatchSyncResult',
    'update_player_challenges',
]
