import threading
import time
from datetime import datetime

import pytest
from sqlalchemy import select

from league_tracker.challenges import (
    ChallengeKind, compute_champion_set, replace_achievements, update_challenge, run_all_challenge_updates,
)
from league_tracker.challenges import engine
from league_tracker.models import Challenges, Summoner
from league_tracker.queries import get_matches
from league_tracker.updaters import store_match

from conftest import participant, match_payload, arena_payload, seed_champions


def add_player(database, puuid='P', game_name='Foo', tag_line='EUW'):
    with database.session() as session:
        Summoner.upsert(session, puuid=puuid, region='euw1', game_name=game_name, tag_line=tag_line,
                        profile_icon_id=1, summoner_level=30, revision_date=None)


def store(database, *payloads):
    for payload in payloads:
        with database.session() as session:
            store_match(session, payload, 'euw1')


def stored_champions(database, kind, puuid='P'):
    table = kind.table
    with database.session() as session:
        rows = session.execute(select(table.c.champion_id).where(table.c.puuid == puuid)).fetchall()
    return {row.champion_id for row in rows}


@pytest.fixture
def history(database):
    """One player with a mix of Summoner's Rift and Arena games."""
    seed_champions(database, 1, 2, 3, 62, 103)
    add_player(database)
    store(
        database,
        # Flawless SR win, current split
        match_payload('EUW1_1', [
            participant('P', 1, game_name='Foo'),
            participant('Q', 3, team_id=200, win=False),
        ], start=datetime(2024, 10, 1)),
        # SR win with deaths, before the split started
        match_payload('EUW1_2', [participant('P', 103, deaths=2, game_name='Foo')], start=datetime(2024, 8, 1)),
        # SR loss
        match_payload('EUW1_3', [participant('P', 3, win=False, deaths=5, game_name='Foo')],
                      start=datetime(2024, 10, 2)),
        # Co-op vs AI win does not count on the Rift
        match_payload('EUW1_4', [participant('P', 3, game_name='Foo')], start=datetime(2024, 8, 15), queue_id=840),
        # Arena first place
        arena_payload('EUW1_5', [participant('P', 2, placement=1, game_name='Foo')], start=datetime(2024, 10, 2)),
        # Arena top four counts as a win but not as first place
        arena_payload('EUW1_6', [participant('P', 62, placement=3, game_name='Foo')], start=datetime(2024, 10, 3)),
    )
    return database


@pytest.mark.parametrize('kind, expected', [
    (ChallengeKind.JACK_OF_ALL_CHAMPS, {1, 103}),
    (ChallengeKind.CHAMPION_OCEAN, {2, 62}),
    (ChallengeKind.CHAMPION_OCEAN_2024_SPLIT_3, {1, 2, 62}),
    (ChallengeKind.ADAPT_TO_ALL_SITUATIONS, {2}),
    (ChallengeKind.INVINCIBLE, {1}),
])
def test_each_kind_counts_its_own_champions(history, kind, expected):
    result = update_challenge(history, kind, 'Foo', 'EUW', 'euw1')

    assert result.success
    assert result.champion_ids == expected
    assert stored_champions(history, kind) == expected


def test_other_players_do_not_count(history):
    update_challenge(history, ChallengeKind.JACK_OF_ALL_CHAMPS, 'Foo', 'EUW', 'euw1')

    assert stored_champions(history, ChallengeKind.JACK_OF_ALL_CHAMPS, puuid='Q') == set()


def test_same_champion_twice_is_one_row(database):
    seed_champions(database, 103)
    add_player(database)
    store(
        database,
        match_payload('EUW1_1', [participant('P', 103, game_name='Foo')], start=datetime(2024, 10, 1)),
        match_payload('EUW1_2', [participant('P', 103, game_name='Foo')], start=datetime(2024, 10, 2)),
    )

    update_challenge(database, ChallengeKind.JACK_OF_ALL_CHAMPS, 'Foo', 'EUW', 'euw1')

    assert stored_champions(database, ChallengeKind.JACK_OF_ALL_CHAMPS) == {103}


def test_replace_is_a_full_replace(database):
    seed_champions(database, 1, 2, 3)
    add_player(database)

    with database.session() as session:
        replace_achievements(session, 'P', ChallengeKind.INVINCIBLE, {1, 2})
    with database.session() as session:
        replace_achievements(session, 'P', ChallengeKind.INVINCIBLE, {2, 3})

    assert stored_champions(database, ChallengeKind.INVINCIBLE) == {2, 3}
    with database.session() as session:
        assert session.get(Challenges, 'P') is not None


def test_recomputing_is_idempotent(history):
    first = update_challenge(history, ChallengeKind.CHAMPION_OCEAN, 'Foo', 'EUW', 'euw1')
    second = update_challenge(history, ChallengeKind.CHAMPION_OCEAN, 'Foo', 'EUW', 'euw1')

    assert first.champion_ids == second.champion_ids == {2, 62}
    assert stored_champions(history, ChallengeKind.CHAMPION_OCEAN) == {2, 62}


def test_unknown_champion_is_skipped(database):
    seed_champions(database, 1)
    add_player(database)
    store(database, match_payload('EUW1_1', [participant('P', 1, game_name='Foo')]),
          match_payload('EUW1_2', [participant('P', 999, game_name='Foo')], start=datetime(2024, 10, 2)))

    result = update_challenge(database, ChallengeKind.JACK_OF_ALL_CHAMPS, 'Foo', 'EUW', 'euw1')

    assert result.success
    assert result.champion_ids == {1}
    assert stored_champions(database, ChallengeKind.JACK_OF_ALL_CHAMPS) == {1}


def test_unknown_summoner_fails_without_writing(database):
    result = update_challenge(database, ChallengeKind.INVINCIBLE, 'Nobody', 'EUW', 'euw1')

    assert not result.success
    assert 'not found' in result.message
    with database.session() as session:
        assert session.query(Challenges).count() == 0


def test_compute_ignores_matches_outside_the_subset(history):
    with history.session() as session:
        matches = get_matches(session, 'P')
        assert len(matches) == 6
        assert compute_champion_set(matches, 'P', ChallengeKind.ADAPT_TO_ALL_SITUATIONS) == {2}


def test_run_all_updates_every_kind(history):
    aggregate = run_all_challenge_updates(history, 'foo', 'euw', 'euw')

    assert aggregate.success
    assert [result.kind for result in aggregate.results] == list(ChallengeKind)
    assert aggregate.failed == []
    assert stored_champions(history, ChallengeKind.INVINCIBLE) == {1}


def test_run_all_reports_failure(database):
    aggregate = run_all_challenge_updates(database, 'Nobody', 'EUW', 'euw1')

    assert not aggregate.success
    assert len(aggregate.failed) == len(ChallengeKind)


def test_every_kind_has_a_filter_and_table():
    tables = {kind.table.name for kind in ChallengeKind}

    assert len(tables) == len(ChallengeKind)
    for kind in ChallengeKind:
        assert kind.match_filter is not None


def test_concurrent_rebuilds_for_one_player_are_serialized(file_database, monkeypatch):
    seed_champions(file_database, 1, 2, 3)
    add_player(file_database)
    sets = {'first': {1, 2}, 'second': {2, 3}}
    active = []
    overlap = []
    guard = threading.Lock()

    def slow_compute(matches, puuid, kind):
        with guard:
            active.append(1)
            overlap.append(len(active))
        time.sleep(0.1)
        with guard:
            active.pop()
        return set(sets[threading.current_thread().name])

    monkeypatch.setattr(engine, 'compute_champion_set', slow_compute)
    results = {}

    def rebuild():
        results[threading.current_thread().name] = update_challenge(
            file_database, ChallengeKind.JACK_OF_ALL_CHAMPS, 'Foo', 'EUW', 'euw1')

    threads = [threading.Thread(target=rebuild, name=name) for name in sets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5)

    assert all(result.success for result in results.values()) and len(results) == 2
    assert max(overlap) == 1
    assert stored_champions(file_database, ChallengeKind.JACK_OF_ALL_CHAMPS) in ({1, 2}, {2, 3})
