"""Summoner lookup with database caching and name-change recovery."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from sqlalchemy.orm import Session

from ..config import settings, normalize_region
from ..database import Database
from ..models import Summoner, utcnow
from ..riot_api import RiotAPIClient, NotFoundError
from ..schemas import AccountDto, SummonerDto, from_epoch_ms

logger = logging.getLogger(__name__)


class StaleIdentityError(Exception):
    """A cached Riot ID no longer resolves upstream; the player probably renamed."""

    def __init__(self, game_name: str, tag_line: str, region: str, puuid: str):
        super().__init__(f"{game_name}#{tag_line} ({region}) no longer resolves; cached PUUID {puuid}")
        self.game_name = game_name
        self.tag_line = tag_line
        self.region = region
        self.puuid = puuid


@dataclass
class Resolution:
    """Result of resolving a Riot ID to a stored summoner."""
    summoner: Summoner
    is_cached: bool
    last_updated: datetime
    new_username: Optional[str] = None

    @property
    def renamed(self) -> bool:
        return self.new_username is not None


@dataclass
class NameChangeResult:
    found: bool
    new_username: Optional[str] = None


def split_riot_id(username: str) -> Tuple[str, str]:
    """Split 'Name#TAG' (or the URL form 'Name-TAG') into its two parts."""
    separator = '#' if '#' in username else '-'
    game_name, _, tag_line = username.rpartition(separator)
    if not game_name or not tag_line:
        raise ValueError(f"Riot ID must look like Name#TAG, got {username!r}")
    return game_name.strip(), tag_line.strip()


def fetch_by_riot_id(api_client: RiotAPIClient, game_name: str, tag_line: str,
                     region: str) -> Tuple[AccountDto, SummonerDto]:
    account = AccountDto.model_validate(api_client.get_account_by_riot_id(game_name, tag_line, region))
    profile = SummonerDto.model_validate(api_client.get_summoner_by_puuid(account.puuid, region))
    return account, profile


def fetch_by_puuid(api_client: RiotAPIClient, puuid: str, region: str) -> Tuple[AccountDto, SummonerDto]:
    account = AccountDto.model_validate(api_client.get_account_by_puuid(puuid, region))
    profile = SummonerDto.model_validate(api_client.get_summoner_by_puuid(puuid, region))
    return account, profile


def upsert_summoner(session: Session, account: AccountDto, profile: SummonerDto, region: str,
                    now: Optional[datetime] = None) -> Summoner:
    """Store the current account + profile, keyed on PUUID.

    The Riot ID is always taken from the account payload, so a player found
    by PUUID but queried by an old name is stored under the new name. Any
    other row still holding that name gives it up.
    """
    if account.game_name and account.tag_line:
        released = Summoner.release_riot_id(session, account.game_name, account.tag_line, region, account.puuid)
        if released:
            logger.info(f"Cleared stale Riot ID {account.riot_id} from {released} other summoner(s)")

    return Summoner.upsert(
        session,
        puuid=account.puuid,
        region=region,
        game_name=account.game_name,
        tag_line=account.tag_line,
        profile_icon_id=profile.profile_icon_id,
        summoner_level=profile.summoner_level,
        revision_date=from_epoch_ms(profile.revision_date),
        updated_at=now,
    )


class SummonerResolver:
    """Resolves Riot IDs to summoners, serving fresh rows from the database."""

    def __init__(
        self,
        api_client: RiotAPIClient,
        database: Database,
        refresh_interval: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.api_client = api_client
        self.database = database
        self.refresh_interval = refresh_interval or timedelta(seconds=settings.SUMMONER_REFRESH_INTERVAL)
        self.clock = clock

    def is_stale(self, summoner: Summoner, now: datetime) -> bool:
        return now - summoner.updated_at > self.refresh_interval

    def resolve(self, game_name: str, tag_line: str, region: str,
                force_refresh: bool = False, follow_renames: bool = True) -> Resolution:
        """Return the summoner for a Riot ID, refreshing it from Riot when stale.

        Raises:
            NotFoundError: the Riot ID does not exist and was never cached.
            RateLimitedError: Riot throttled the lookup.
            StaleIdentityError: the name moved and ``follow_renames`` is False.
        """
        region = normalize_region(region)
        with self.database.session() as session:
            now = self.clock()
            cached = Summoner.get_by_riot_id(session, game_name, tag_line, region)

            if cached and not force_refresh and not self.is_stale(cached, now):
                logger.debug(f"Serving cached summoner {cached.riot_id} ({region})")
                return Resolution(summoner=cached, is_cached=True, last_updated=cached.updated_at)

            try:
                summoner = self._refresh_by_riot_id(session, game_name, tag_line, region, cached, now)
                return Resolution(summoner=summoner, is_cached=False, last_updated=now)
            except StaleIdentityError as stale:
                if not follow_renames:
                    raise
                logger.info(f"{game_name}#{tag_line} ({region}) not found upstream, retrying by PUUID")
                return self._migrate(session, stale.puuid, game_name, tag_line, region, now)

    def check_name_change(self, game_name: str, tag_line: str, region: str) -> NameChangeResult:
        """Find the current Riot ID of a player cached under an old name."""
        region = normalize_region(region)
        with self.database.session() as session:
            cached = Summoner.get_by_riot_id(session, game_name, tag_line, region)
            if cached is None:
                return NameChangeResult(found=False)
            try:
                resolution = self._migrate(session, cached.puuid, game_name, tag_line, region, self.clock())
            except NotFoundError:
                logger.warning(f"Cached PUUID {cached.puuid} for {game_name}#{tag_line} no longer exists")
                return NameChangeResult(found=False)

            new_username = resolution.new_username or resolution.summoner.riot_id
            return NameChangeResult(found=True, new_username=new_username)

    def refresh_by_puuid(self, puuid: str, region: str) -> Summoner:
        region = normalize_region(region)
        with self.database.session() as session:
            account, profile = fetch_by_puuid(self.api_client, puuid, region)
            return upsert_summoner(session, account, profile, region, self.clock())

    def _refresh_by_riot_id(self, session: Session, game_name: str, tag_line: str, region: str,
                            cached: Optional[Summoner], now: datetime) -> Summoner:
        try:
            account, profile = fetch_by_riot_id(self.api_client, game_name, tag_line, region)
        except NotFoundError:
            if cached is None:
                raise
            raise StaleIdentityError(game_name, tag_line, region, cached.puuid)

        summoner = upsert_summoner(session, account, profile, region, now)
        logger.info(f"Refreshed summoner {summoner.riot_id} ({region})")
        return summoner

    def _migrate(self, session: Session, puuid: str, game_name: str, tag_line: str,
                 region: str, now: datetime) -> Resolution:
        account, profile = fetch_by_puuid(self.api_client, puuid, region)
        summoner = upsert_summoner(session, account, profile, region, now)

        renamed = (summoner.riot_id.lower() != f"{game_name}#{tag_line}".lower())
        if renamed:
            logger.info(f"{game_name}#{tag_line} ({region}) is now {summoner.riot_id}")
        return Resolution(
            summoner=summoner,
            is_cached=False,
            last_updated=now,
            new_username=summoner.riot_id if renamed else None,
        )
