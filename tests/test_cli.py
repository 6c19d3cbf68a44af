import sys

import pytest

from league_tracker import cli
from league_tracker.app import App
from league_tracker.database import Database
from league_tracker.jobs import JobQueue, RefreshPipeline, default_handlers
from league_tracker.models import Summoner, ChallengesDetails, Challenge
from league_tracker.updaters import SummonerResolver

from conftest import participant, match_payload


@pytest.fixture
def offline(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli.settings, 'DATABASE_URL', f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setattr(cli.settings, 'RIOT_API_KEY', '')


def run(monkeypatch, *argv):
    monkeypatch.setattr(sys, 'argv', ['league-tracker', *argv])
    cli.main()


def test_refresh_arguments():
    args = cli.setup_argparse().parse_args(['--region', 'euw', 'refresh', 'Foo#EUW', '--wait'])

    assert args.command == 'refresh'
    assert args.riot_id == 'Foo#EUW'
    assert args.wait and not args.no_matches
    assert args.region == 'euw'


def test_db_init_and_stats(offline, monkeypatch, capsys):
    run(monkeypatch, 'db', 'init')
    run(monkeypatch, 'db', 'stats')

    out = capsys.readouterr().out
    assert "Database initialized successfully." in out
    assert "Summoners: 0" in out


def test_progress_without_data(offline, monkeypatch, capsys):
    run(monkeypatch, 'db', 'init')
    run(monkeypatch, '--region', 'euw', 'progress', 'Foo#EUW')

    assert "No challenge data stored for Foo#EUW" in capsys.readouterr().out


def test_online_command_requires_api_key(offline, monkeypatch):
    with pytest.raises(SystemExit) as excinfo:
        run(monkeypatch, 'refresh', 'Foo#EUW')

    assert excinfo.value.code == 1


def test_unknown_region_exits(offline, monkeypatch):
    with pytest.raises(SystemExit) as excinfo:
        run(monkeypatch, '--region', 'atlantis', 'db', 'stats')

    assert excinfo.value.code == 2


def test_queue_metrics_subcommand_is_gone():
    with pytest.raises(SystemExit):
        cli.setup_argparse().parse_args(['queue-metrics'])


def test_refresh_prints_metrics_of_the_queue_that_ran(offline, monkeypatch, capsys, riot, file_database):
    riot.add_player('P', 'Foo', 'EUW')
    riot.player_challenges['P'] = {'totalPoints': {'level': 'GOLD', 'current': 10, 'max': 100}}
    riot.match_ids['P'] = ['EUW1_1']
    riot.matches['EUW1_1'] = match_payload('EUW1_1', [participant('P', 1, game_name='Foo')])
    resolver = SummonerResolver(riot, file_database)
    job_queue = JobQueue(default_handlers(riot, file_database, resolver), concurrency=1, max_attempts=2, backoff=0)
    app = App(riot, file_database, resolver, job_queue, RefreshPipeline(job_queue, resolver))
    monkeypatch.setattr(cli, 'build_app', lambda: app)
    monkeypatch.setattr(cli.settings, 'RIOT_API_KEY', 'RGAPI-test')

    run(monkeypatch, '--region', 'euw', 'refresh', 'Foo#EUW', '--wait', '--metrics')

    out = capsys.readouterr().out
    assert "=== Refresh succeeded ===" in out
    assert "=== Queue Metrics ===" in out
    assert "completed  7" in out


def test_leaderboard_highlights_the_player(offline, monkeypatch, capsys):
    run(monkeypatch, 'db', 'init')
    database = Database(cli.settings.DATABASE_URL)
    with database.session() as session:
        for puuid, name, value in [('A', 'Alpha', 30.0), ('B', 'Bravo', 20.0), ('C', 'Foo', 10.0)]:
            Summoner.upsert(session, puuid=puuid, region='euw1', game_name=name, tag_line='EUW',
                            profile_icon_id=1, summoner_level=30, revision_date=None)
            session.add(ChallengesDetails(puuid=puuid))
            session.flush()
            session.add(Challenge(challenges_details_id=puuid, challenge_id=101000, level='GOLD', value=value))
    database.dispose()

    run(monkeypatch, '--region', 'euw', 'leaderboard', '101000', '--player', 'Foo#EUW')

    out = capsys.readouterr().out
    assert out.index("Alpha#EUW") < out.index("Bravo#EUW") < out.index("Foo#EUW")
    assert "* Foo#EUW" in out
    assert "Foo#EUW: rank 3" in out


def test_empty_leaderboard(offline, monkeypatch, capsys):
    run(monkeypatch, 'db', 'init')
    run(monkeypatch, 'leaderboard', '999')

    assert "No scores stored for challenge 999." in capsys.readouterr().out
