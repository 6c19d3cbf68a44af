"""Locally computed champion challenges."""
from .kinds import ChallengeKind, SPLIT_3_START
from .engine import (
    ChallengeUpdateResult, AggregateResult, AggregationError, compute_champion_set, replace_achievements,
    update_challenge, run_all_challenge_updates, update_all_challenge_data,
)

__all__ = [
    'ChallengeKind',
    'SPLIT_3_START',
    'ChallengeUpdateResult',
    'AggregateResult',
    'AggregationError',
    'compute_champion_set',
    'replace_achievements',
    'update_challenge',
    'run_all_challenge_updates',
    'update_all_challenge_data',
]
