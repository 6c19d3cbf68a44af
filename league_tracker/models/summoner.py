"""Summoner model for storing player information."""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, Integer, DateTime, Index, func
from sqlalchemy.orm import relationship

from .base import BaseModel, TimestampMixin, upsert_insert, utcnow


class Summoner(BaseModel, TimestampMixin):
    """Represents a League of Legends summoner/player.

    ``puuid`` is the permanent identity. ``(game_name, tag_line, region)`` is
    only a soft lookup key: players rename, so it can go stale.
    """

    puuid = Column(String(78), primary_key=True)
    game_name = Column(String(100), nullable=True)
    tag_line = Column(String(10), nullable=True)
    region = Column(String(10), nullable=False, index=True)  # Platform ID (e.g., 'na1', 'euw1')
    profile_icon_id = Column(Integer, nullable=False, default=0)
    summoner_level = Column(Integer, nullable=False, default=0)
    revision_date = Column(DateTime, nullable=False, default=datetime(1970, 1, 1))

    # Relationships
    matches = relationship("Match", secondary="match_summoners", back_populates="summoners")
    masteries = relationship("ChampionMastery", back_populates="summoner")

    __table_args__ = (
        Index('ix_summoner_riot_id_region', 'game_name', 'tag_line', 'region'),
    )

    def __repr__(self):
        return f"<Summoner(riot_id='{self.riot_id}', level={self.summoner_level}, region='{self.region}')>"

    @property
    def riot_id(self) -> str:
        return f"{self.game_name}#{self.tag_line}"

    @classmethod
    def get_by_puuid(cls, session, puuid: str) -> Optional["Summoner"]:
        """Get a summoner by their PUUID."""
        return session.get(cls, puuid)

    @classmethod
    def get_by_riot_id(cls, session, game_name: str, tag_line: str, region: str) -> Optional["Summoner"]:
        """Get a summoner by Riot ID and region, ignoring case."""
        return session.query(cls).filter(
            func.lower(cls.game_name) == game_name.lower(),
            func.lower(cls.tag_line) == tag_line.lower(),
            cls.region == region.lower()
        ).order_by(cls.updated_at.desc()).first()

    @classmethod
    def upsert(
        cls,
        session,
        puuid: str,
        region: str,
        game_name: Optional[str],
        tag_line: Optional[str],
        profile_icon_id: int,
        summoner_level: int,
        revision_date: Optional[datetime],
        updated_at: Optional[datetime] = None,
    ) -> "Summoner":
        """Insert or update a summoner keyed on PUUID and return the fresh row."""
        now = updated_at or utcnow()
        values = {
            'game_name': game_name,
            'tag_line': tag_line,
            'region': region.lower(),
            'profile_icon_id': profile_icon_id,
            'summoner_level': summoner_level,
            'revision_date': revision_date or datetime(1970, 1, 1),
            'updated_at': now,
        }
        stmt = upsert_insert(session, cls).values(puuid=puuid, created_at=utcnow(), **values)
        stmt = stmt.on_conflict_do_update(index_elements=[cls.puuid], set_=values)
        session.execute(stmt)
        return session.get(cls, puuid, populate_existing=True)

    @classmethod
    def release_riot_id(cls, session, game_name: str, tag_line: str, region: str, owner_puuid: str) -> int:
        """Clear a Riot ID held by any summoner other than ``owner_puuid``.

        Returns the number of rows that gave up the name.
        """
        stale = session.query(cls).filter(
            func.lower(cls.game_name) == game_name.lower(),
            func.lower(cls.tag_line) == tag_line.lower(),
            cls.region == region.lower(),
            cls.puuid != owner_puuid
        ).all()
        for summoner in stale:
            summoner.game_name = None
            summoner.tag_line = None
        return len(stale)
