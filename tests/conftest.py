"""Shared fixtures: a throwaway database and an in-memory stand-in for the Riot API."""
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from league_tracker.database import Database
from league_tracker.models import ChampionDetails
from league_tracker.riot_api import NotFoundError


def epoch_ms(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp() * 1000)


def participant(puuid: str, champion_id: int, win: bool = True, deaths: int = 0,
                placement: Optional[int] = None, team_id: int = 100, **extra) -> dict:
    record = {
        'puuid': puuid,
        'championId': champion_id,
        'win': win,
        'kills': 5,
        'deaths': deaths,
        'assists': 7,
        'teamId': team_id,
        'riotIdGameName': extra.pop('game_name', f"Player{puuid[:4]}"),
        'riotIdTagline': extra.pop('tag_line', 'EUW'),
        'summonerLevel': 100,
        'profileIcon': 1,
    }
    if placement is not None:
        record['placement'] = placement
    record.update(extra)
    return record


def match_payload(game_id: str, participants: List[dict], start: datetime = datetime(2024, 10, 1),
                  map_id: int = 11, game_mode: str = 'CLASSIC', game_type: str = 'MATCHED_GAME',
                  queue_id: int = 420, duration: int = 1800) -> dict:
    return {
        'metadata': {'matchId': game_id, 'participants': [p.get('puuid') for p in participants]},
        'info': {
            'gameCreation': epoch_ms(start),
            'gameDuration': duration,
            'gameStartTimestamp': epoch_ms(start),
            'gameEndTimestamp': epoch_ms(start) + duration * 1000,
            'gameMode': game_mode,
            'gameName': 'teambuilder-match',
            'gameType': game_type,
            'gameVersion': '14.19.1',
            'mapId': map_id,
            'platformId': 'EUW1',
            'queueId': queue_id,
            'participants': participants,
            'teams': [{'teamId': 100, 'win': True}, {'teamId': 200, 'win': False}],
        },
    }


def arena_payload(game_id: str, participants: List[dict], start: datetime = datetime(2024, 10, 1)) -> dict:
    return match_payload(game_id, participants, start=start, map_id=30, game_mode='CHERRY', queue_id=1700)


class FakeRiotClient:
    """Serves canned payloads and records every call made."""

    def __init__(self):
        self.accounts: Dict[str, dict] = {}
        self.summoners: Dict[str, dict] = {}
        self.match_ids: Dict[str, List[str]] = {}
        self.matches: Dict[str, dict] = {}
        self.masteries: Dict[str, List[dict]] = {}
        self.player_challenges: Dict[str, dict] = {}
        self.challenge_configs: List[dict] = []
        self.versions: List[str] = ['14.20.1', '14.19.1']
        self.champions: Dict[str, dict] = {}
        self.errors: Dict[str, List[Exception]] = {}
        self.delays: Dict[str, float] = {}
        self.calls: List[tuple] = []

    def add_player(self, puuid: str, game_name: str, tag_line: str, level: int = 30):
        self.accounts[puuid] = {'puuid': puuid, 'gameName': game_name, 'tagLine': tag_line}
        self.summoners[puuid] = {
            'puuid': puuid,
            'profileIconId': 7,
            'summonerLevel': level,
            'revisionDate': epoch_ms(datetime(2024, 10, 1)),
        }

    def rename(self, puuid: str, game_name: str, tag_line: str):
        self.accounts[puuid] = {'puuid': puuid, 'gameName': game_name, 'tagLine': tag_line}

    def fail(self, method: str, *errors: Exception):
        """Make the next calls to ``method`` raise ``errors`` in order."""
        self.errors.setdefault(method, []).extend(errors)

    def slow_down(self, method: str, seconds: float):
        self.delays[method] = seconds

    def _record(self, method: str, *args):
        self.calls.append((method,) + args)
        if method in self.delays:
            time.sleep(self.delays[method])
        pending = self.errors.get(method)
        if pending:
            raise pending.pop(0)

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def get_account_by_riot_id(self, game_name, tag_line, region):
        self._record('get_account_by_riot_id', game_name, tag_line, region)
        for account in self.accounts.values():
            if (account['gameName'].lower(), account['tagLine'].lower()) == (game_name.lower(), tag_line.lower()):
                return dict(account)
        raise NotFoundError(f"No account for {game_name}#{tag_line}")

    def get_account_by_puuid(self, puuid, region):
        self._record('get_account_by_puuid', puuid, region)
        if puuid not in self.accounts:
            raise NotFoundError(f"No account for PUUID {puuid}")
        return dict(self.accounts[puuid])

    def get_summoner_by_puuid(self, puuid, region):
        self._record('get_summoner_by_puuid', puuid, region)
        if puuid not in self.summoners:
            raise NotFoundError(f"No summoner for PUUID {puuid}")
        return dict(self.summoners[puuid])

    def get_match_ids_by_puuid(self, puuid, region, start=0, count=100, start_time=None):
        self._record('get_match_ids_by_puuid', puuid, region, start, count)
        return list(self.match_ids.get(puuid, []))[start:start + count]

    def get_match_by_id(self, match_id, region):
        self._record('get_match_by_id', match_id, region)
        if match_id not in self.matches:
            raise NotFoundError(f"No match {match_id}")
        return self.matches[match_id]

    def get_champion_masteries(self, puuid, region):
        self._record('get_champion_masteries', puuid, region)
        return list(self.masteries.get(puuid, []))

    def get_challenges_config(self, region):
        self._record('get_challenges_config', region)
        return list(self.challenge_configs)

    def get_player_challenges(self, puuid, region):
        self._record('get_player_challenges', puuid, region)
        if puuid not in self.player_challenges:
            raise NotFoundError(f"No challenges for PUUID {puuid}")
        return self.player_challenges[puuid]

    def get_data_dragon_versions(self):
        self._record('get_data_dragon_versions')
        return list(self.versions)

    def get_champion_details(self, version):
        self._record('get_champion_details', version)
        return {'type': 'champion', 'version': version, 'data': dict(self.champions)}

    def close(self):
        pass


def champion_entry(champion_id: int, key: str, name: str, version: str = '14.20.1') -> dict:
    return {
        'version': version,
        'id': key,
        'key': str(champion_id),
        'name': name,
        'title': 'the Champion',
        'blurb': '...',
        'info': {'attack': 5, 'defense': 5, 'magic': 5, 'difficulty': 5},
        'image': {'full': f'{key}.png', 'sprite': 'champion0.png', 'group': 'champion',
                  'x': 0, 'y': 0, 'w': 48, 'h': 48},
        'tags': ['Fighter'],
        'partype': 'Mana',
        'stats': {'hp': 600.0, 'armor': 30.0},
    }


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def file_database(tmp_path):
    """SQLite file database, safe to use from worker threads."""
    db = Database(f"sqlite:///{tmp_path / 'tracker.db'}")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def riot():
    client = FakeRiotClient()
    for champion_id, key, name in [(1, 'Annie', 'Annie'), (2, 'Olaf', 'Olaf'), (3, 'Galio', 'Galio'),
                                   (103, 'Ahri', 'Ahri'), (62, 'MonkeyKing', 'Wukong')]:
        client.champions[key] = champion_entry(champion_id, key, name)
    return client


def seed_champions(db: Database, *champion_ids: int) -> None:
    with db.session() as session:
        ChampionDetails.upsert_many(session, [
            {'id': champion_id, 'version': '14.20.1', 'key': f'Champ{champion_id}', 'name': f'Champ {champion_id}'}
            for champion_id in champion_ids
        ])
