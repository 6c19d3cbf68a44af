"""Riot Games API client for fetching League of Legends data."""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests
from ratelimit import limits, sleep_and_retry

from .config import settings, normalize_region, region_group

# Set up logging
logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Classification of a failed Riot API call."""
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"
    TIMEOUT = "timeout"


class RiotAPIError(Exception):
    """Base exception for Riot API errors."""
    kind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitedError(RiotAPIError):
    """Upstream answered 429."""
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, status=429)
        self.retry_after = retry_after


class NotFoundError(RiotAPIError):
    """The requested identity or resource does not exist upstream."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str):
        super().__init__(message, status=404)


class UnexpectedStatusError(RiotAPIError):
    """Any other non-2xx answer, or a transport failure."""
    kind = ErrorKind.UNEXPECTED


class ApiTimeoutError(RiotAPIError):
    """The request did not complete within the configured timeout."""
    kind = ErrorKind.TIMEOUT


class RiotAPIClient:
    """Client for interacting with the Riot Games API.

    All Riot API requests made through one instance share a single
    two-window rate limiter, so construct the client once and pass it to
    every consumer.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        calls_per_second: Optional[int] = None,
        calls_per_two_minutes: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the Riot API client.

        Args:
            api_key: Optional API key. If not provided, uses the one from settings.
            session: Optional requests session (one is created if omitted).
            calls_per_second: Short window budget.
            calls_per_two_minutes: Long window budget.
            timeout: Per request timeout in seconds.
        """
        self.api_key = api_key or settings.RIOT_API_KEY
        if not self.api_key:
            raise ValueError("Riot API key is required")

        self.session = session or requests.Session()
        self.timeout = timeout or settings.RIOT_API_TIMEOUT
        per_second = calls_per_second or settings.RIOT_API_RATE_LIMIT_PER_SECOND
        per_two_minutes = calls_per_two_minutes or settings.RIOT_API_RATE_LIMIT_PER_TWO_MINUTES

        # Long window outermost: a call is only counted against the short
        # window once the long window has admitted it.
        short_window = sleep_and_retry(limits(calls=per_second, period=1)(self._send))
        self._limited_send = sleep_and_retry(limits(calls=per_two_minutes, period=120)(short_window))

    def close(self) -> None:
        self.session.close()

    def _get_headers(self) -> Dict[str, str]:
        """Get the headers for API requests."""
        return {
            "X-Riot-Token": self.api_key,
            "Accept": "application/json"
        }

    def _send(self, url: str, params: Optional[Dict] = None, headers: Optional[Dict] = None) -> requests.Response:
        try:
            return self.session.get(
                url,
                headers=headers or {},
                params=params or {},
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"Request timed out after {self.timeout}s: {url}")
            raise ApiTimeoutError(f"Timed out fetching {url}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"API request failed: {str(e)}")
            raise UnexpectedStatusError(f"Failed to fetch data: {str(e)}") from e

    def _make_request(self, url: str, params: Optional[Dict] = None) -> Union[Dict, List]:
        """Make a rate limited request to the Riot API."""
        response = self._limited_send(url, params, self._get_headers())
        return self._handle_response(url, response)

    def _make_static_request(self, url: str) -> Union[Dict, List]:
        """Data Dragon requests are not counted against the Riot API budget."""
        return self._handle_response(url, self._send(url))

    @staticmethod
    def _handle_response(url: str, response: requests.Response) -> Union[Dict, List]:
        status = response.status_code
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning(f"Rate limited by Riot API (Retry-After={retry_after}): {url}")
            raise RateLimitedError(
                f"Rate limited: {url}",
                retry_after=float(retry_after) if retry_after else None,
            )
        if status == 404:
            raise NotFoundError(f"Not found: {url}")
        if not 200 <= status < 300:
            logger.error(f"Unexpected status {status} for {url}: {response.text[:200]}")
            raise UnexpectedStatusError(f"HTTP {status} for {url}", status=status)
        return response.json()

    @staticmethod
    def _platform_url(region: str) -> str:
        return settings.RIOT_API_BASE_URL.format(route=normalize_region(region))

    @staticmethod
    def _regional_url(region: str) -> str:
        return settings.RIOT_API_BASE_URL.format(route=region_group(region))

    @staticmethod
    def _account_url(region: str) -> str:
        # ACCOUNT-V1 has no SEA cluster
        group = region_group(region)
        return settings.RIOT_API_BASE_URL.format(route="asia" if group == "sea" else group)

    # Account

    def get_account_by_riot_id(self, game_name: str, tag_line: str, region: str) -> Dict[str, Any]:
        """Get account data by Riot ID (game name and tag line).

        Args:
            game_name: The in-game name of the player
            tag_line: The tag line after the '#'
            region: Platform routing value the player plays on

        Returns:
            Dict containing puuid, gameName and tagLine
        """
        url = (
            f"{self._account_url(region)}/riot/account/v1/accounts/by-riot-id/"
            f"{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
        )
        account = self._make_request(url)
        if not account or not account.get('puuid'):
            raise NotFoundError(f"No account for {game_name}#{tag_line}")
        return account

    def get_account_by_puuid(self, puuid: str, region: str) -> Dict[str, Any]:
        url = f"{self._account_url(region)}/riot/account/v1/accounts/by-puuid/{puuid}"
        account = self._make_request(url)
        if not account or not account.get('puuid'):
            raise NotFoundError(f"No account for PUUID {puuid}")
        return account

    # Summoner

    def get_summoner_by_puuid(self, puuid: str, region: str) -> Dict[str, Any]:
        """Get summoner profile (level, icon, revision date) by PUUID."""
        url = f"{self._platform_url(region)}/lol/summoner/v4/summoners/by-puuid/{puuid}"
        return self._make_request(url)

    # Matches

    def get_match_ids_by_puuid(
        self,
        puuid: str,
        region: str,
        start: int = 0,
        count: int = 100,
        start_time: Optional[int] = None,
    ) -> List[str]:
        """Get a page of match IDs for a player, newest first.

        Args:
            puuid: The player's PUUID
            region: Platform routing value (e.g., 'na1', 'euw1', 'kr')
            start: Start index (for pagination)
            count: Number of matches to return (max 100)
            start_time: Epoch timestamp in seconds (optional)

        Returns:
            List of match IDs
        """
        url = f"{self._regional_url(region)}/lol/match/v5/matches/by-puuid/{puuid}/ids"
        params = {
            'start': start,
            'count': min(int(count), 100),
        }
        if start_time is not None:
            params['startTime'] = start_time

        logger.debug(f"Fetching match ids for {puuid}: {params}")
        return self._make_request(url, params=params)

    def get_match_by_id(self, match_id: str, region: str) -> Dict[str, Any]:
        url = f"{self._regional_url(region)}/lol/match/v5/matches/{match_id}"
        return self._make_request(url)

    # Mastery

    def get_champion_masteries(self, puuid: str, region: str) -> List[Dict[str, Any]]:
        url = f"{self._platform_url(region)}/lol/champion-mastery/v4/champion-masteries/by-puuid/{puuid}"
        return self._make_request(url)

    # Challenges

    def get_challenges_config(self, region: str) -> List[Dict[str, Any]]:
        url = f"{self._platform_url(region)}/lol/challenges/v1/challenges/config"
        return self._make_request(url)

    def get_player_challenges(self, puuid: str, region: str) -> Dict[str, Any]:
        url = f"{self._platform_url(region)}/lol/challenges/v1/player-data/{puuid}"
        return self._make_request(url)

    # Data Dragon

    def get_data_dragon_versions(self) -> List[str]:
        return self._make_static_request(f"{settings.DATA_DRAGON_BASE_URL}/api/versions.json")

    def get_champion_details(self, version: str) -> Dict[str, Any]:
        """Get the full champion list for a patch version from Data Dragon."""
        url = f"{settings.DATA_DRAGON_BASE_URL}/cdn/{version}/data/en_US/champion.json"
        return self._make_static_request(url)
