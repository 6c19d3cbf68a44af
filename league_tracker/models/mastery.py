"""Champion mastery per player."""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from .base import BaseModel, upsert_insert, utcnow


class ChampionMastery(BaseModel):
    """One row per (champion, player). Overwritten on every sync."""

    champion_id = Column(Integer, primary_key=True)
    puuid = Column(
        String(78),
        ForeignKey('summoner.puuid', ondelete='RESTRICT', onupdate='CASCADE'),
        primary_key=True
    )
    champion_level = Column(Integer, nullable=False)
    champion_points = Column(Integer, nullable=False)
    tokens_earned = Column(Integer, nullable=False, default=0)
    last_play_time = Column(DateTime, nullable=False)
    champion_points_until_next_level = Column(Integer, nullable=False, default=0)
    champion_points_since_last_level = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    summoner = relationship("Summoner", back_populates="masteries")

    def __repr__(self):
        return f"<ChampionMastery(champion={self.champion_id}, points={self.champion_points})>"

    @classmethod
    def upsert_many(cls, session, puuid: str, rows: list, updated_at: Optional[datetime] = None) -> int:
        """Upsert mastery rows (dicts of column values without puuid)."""
        if not rows:
            return 0
        now = updated_at or utcnow()
        values = [{**row, 'puuid': puuid, 'updated_at': now} for row in rows]
        stmt = upsert_insert(session, cls).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[cls.champion_id, cls.puuid],
            set_={
                name: stmt.excluded[name]
                for name in (
                    'champion_level', 'champion_points', 'tokens_earned', 'last_play_time',
                    'champion_points_until_next_level', 'champion_points_since_last_level',
                    'updated_at',
                )
            }
        )
        session.execute(stmt)
        return len(values)

    @classmethod
    def last_update(cls, session, puuid: str) -> Optional[datetime]:
        """Most recent mastery sync for a player, or None if never synced."""
        return session.query(func.max(cls.updated_at)).filter(cls.puuid == puuid).scalar()
