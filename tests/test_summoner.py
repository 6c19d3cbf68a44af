from datetime import datetime, timedelta

import pytest

from league_tracker.models import Summoner
from league_tracker.riot_api import NotFoundError, RateLimitedError
from league_tracker.updaters import SummonerResolver, StaleIdentityError, split_riot_id

NOW = datetime(2024, 10, 1, 12, 0, 0)


def make_resolver(riot, database, now=NOW):
    return SummonerResolver(riot, database, refresh_interval=timedelta(hours=1), clock=lambda: now)


def seed_summoner(database, puuid, game_name, tag_line, updated_at, region='euw1', level=10):
    with database.session() as session:
        Summoner.upsert(session, puuid=puuid, region=region, game_name=game_name, tag_line=tag_line,
                        profile_icon_id=1, summoner_level=level, revision_date=None, updated_at=updated_at)


def test_first_lookup_fetches_and_stores(riot, database):
    riot.add_player('P1', 'Foo', 'EUW', level=42)

    resolution = make_resolver(riot, database).resolve('foo', 'euw', 'euw')

    assert not resolution.is_cached
    assert resolution.summoner.puuid == 'P1'
    assert resolution.summoner.riot_id == 'Foo#EUW'
    assert resolution.summoner.summoner_level == 42
    with database.session() as session:
        stored = Summoner.get_by_puuid(session, 'P1')
        assert stored.region == 'euw1'
        assert stored.updated_at == NOW


def test_unknown_player_is_not_found(riot, database):
    with pytest.raises(NotFoundError):
        make_resolver(riot, database).resolve('Nobody', 'EUW', 'euw1')


def test_fresh_row_is_served_from_cache(riot, database):
    riot.add_player('P1', 'Foo', 'EUW')
    seed_summoner(database, 'P1', 'Foo', 'EUW', NOW - timedelta(minutes=59))

    resolution = make_resolver(riot, database).resolve('Foo', 'EUW', 'euw1')

    assert resolution.is_cached
    assert resolution.last_updated == NOW - timedelta(minutes=59)
    assert riot.calls == []


def test_stale_row_is_refreshed(riot, database):
    riot.add_player('P1', 'Foo', 'EUW', level=99)
    seed_summoner(database, 'P1', 'Foo', 'EUW', NOW - timedelta(minutes=61))

    resolution = make_resolver(riot, database).resolve('Foo', 'EUW', 'euw1')

    assert not resolution.is_cached
    assert riot.count('get_account_by_riot_id') == 1
    assert resolution.summoner.summoner_level == 99
    assert resolution.last_updated == NOW


def test_exactly_one_hour_old_is_still_fresh(riot, database):
    riot.add_player('P1', 'Foo', 'EUW')
    seed_summoner(database, 'P1', 'Foo', 'EUW', NOW - timedelta(hours=1))

    assert make_resolver(riot, database).resolve('Foo', 'EUW', 'euw1').is_cached


def test_force_refresh_bypasses_cache(riot, database):
    riot.add_player('P1', 'Foo', 'EUW')
    seed_summoner(database, 'P1', 'Foo', 'EUW', NOW - timedelta(minutes=1))

    resolution = make_resolver(riot, database).resolve('Foo', 'EUW', 'euw1', force_refresh=True)

    assert not resolution.is_cached
    assert riot.count('get_summoner_by_puuid') == 1


def test_name_change_redirect(riot, database):
    riot.add_player('P', 'Bar', 'EUW')
    seed_summoner(database, 'P', 'Foo', 'EUW', NOW - timedelta(days=2))

    resolution = make_resolver(riot, database).resolve('Foo', 'EUW', 'euw1')

    assert resolution.new_username == 'Bar#EUW'
    assert resolution.renamed
    assert resolution.summoner.puuid == 'P'
    assert riot.count('get_account_by_puuid') == 1
    with database.session() as session:
        assert Summoner.get_by_riot_id(session, 'Foo', 'EUW', 'euw1') is None
        assert Summoner.get_by_riot_id(session, 'Bar', 'EUW', 'euw1').puuid == 'P'


def test_rename_without_follow_raises_stale_identity(riot, database):
    riot.add_player('P', 'Bar', 'EUW')
    seed_summoner(database, 'P', 'Foo', 'EUW', NOW - timedelta(days=2))

    with pytest.raises(StaleIdentityError) as excinfo:
        make_resolver(riot, database).resolve('Foo', 'EUW', 'euw1', follow_renames=False)

    assert excinfo.value.puuid == 'P'


def test_rate_limit_propagates_and_keeps_cached_row(riot, database):
    riot.add_player('P1', 'Foo', 'EUW')
    seed_summoner(database, 'P1', 'Foo', 'EUW', NOW - timedelta(days=1), level=10)
    riot.fail('get_account_by_riot_id', RateLimitedError("slow down", retry_after=1))

    with pytest.raises(RateLimitedError):
        make_resolver(riot, database).resolve('Foo', 'EUW', 'euw1')

    with database.session() as session:
        assert Summoner.get_by_puuid(session, 'P1').summoner_level == 10


def test_name_taken_over_by_another_player_is_released(riot, database):
    # Old owner of "Foo#EUW" renamed away; a new player now holds the name
    seed_summoner(database, 'OLD', 'Foo', 'EUW', NOW - timedelta(days=30))
    riot.add_player('NEW', 'Foo', 'EUW')

    resolution = make_resolver(riot, database).resolve('Foo', 'EUW', 'euw1')

    assert resolution.summoner.puuid == 'NEW'
    with database.session() as session:
        old = Summoner.get_by_puuid(session, 'OLD')
        assert old.game_name is None and old.tag_line is None
        assert Summoner.get_by_riot_id(session, 'Foo', 'EUW', 'euw1').puuid == 'NEW'


def test_check_name_change(riot, database):
    riot.add_player('P', 'Bar', 'EUW')
    seed_summoner(database, 'P', 'Foo', 'EUW', NOW - timedelta(days=2))
    resolver = make_resolver(riot, database)

    assert resolver.check_name_change('Foo', 'EUW', 'euw1').new_username == 'Bar#EUW'
    assert not resolver.check_name_change('Unknown', 'EUW', 'euw1').found


def test_refresh_by_puuid(riot, database):
    riot.add_player('P', 'Foo', 'EUW', level=77)

    summoner = make_resolver(riot, database).refresh_by_puuid('P', 'euw')

    assert summoner.summoner_level == 77
    assert summoner.region == 'euw1'


@pytest.mark.parametrize('value, expected', [
    ('Foo#EUW', ('Foo', 'EUW')),
    ('Foo Bar#1234', ('Foo Bar', '1234')),
    ('Foo-EUW', ('Foo', 'EUW')),
])
def test_split_riot_id(value, expected):
    assert split_riot_id(value) == expected


def test_split_riot_id_rejects_bare_name():
    with pytest.raises(ValueError):
        split_riot_id('Foo')
