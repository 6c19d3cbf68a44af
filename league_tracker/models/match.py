"""Models for storing match data."""
from typing import Iterable, List, Set

from sqlalchemy import (
    Column, String, Integer, ForeignKey, DateTime, Index, Table
)
from sqlalchemy.orm import relationship

from .base import Base, BaseModel, JSONType, upsert_insert
from ..schemas import Participant, parse_participants

# Many-to-many between matches and the summoners who played in them
match_summoners = Table(
    "match_summoners",
    Base.metadata,
    Column("game_id", String(100), ForeignKey("match.game_id", ondelete="CASCADE", onupdate="CASCADE"), primary_key=True),
    Column("puuid", String(78), ForeignKey("summoner.puuid", ondelete="CASCADE", onupdate="CASCADE"), primary_key=True, index=True),
)


class Match(BaseModel):
    """Represents a League of Legends match. Immutable once stored."""

    game_id = Column(String(100), primary_key=True)  # Riot's match ID, e.g. 'EUW1_7012345678'

    # Relationships
    info = relationship("MatchInfo", back_populates="match", uselist=False,
                        cascade="all, delete-orphan", passive_deletes=True)
    summoners = relationship("Summoner", secondary=match_summoners, back_populates="matches")

    def __repr__(self):
        return f"<Match(game_id={self.game_id})>"

    @property
    def participants(self) -> List[Participant]:
        """Validated participants, empty if the match has no info row."""
        if self.info is None:
            return []
        return parse_participants(self.info.participants, self.game_id)

    @classmethod
    def existing_ids(cls, session, game_ids: Iterable[str]) -> Set[str]:
        """Return the subset of ``game_ids`` already stored."""
        game_ids = list(game_ids)
        if not game_ids:
            return set()
        rows = session.query(cls.game_id).filter(cls.game_id.in_(game_ids)).all()
        return {row.game_id for row in rows}

    @classmethod
    def link_summoners(cls, session, game_id: str, puuids: Iterable[str]) -> None:
        """Attach participants to a match, ignoring links that already exist."""
        rows = [{'game_id': game_id, 'puuid': puuid} for puuid in puuids]
        if not rows:
            return
        stmt = upsert_insert(session, match_summoners).values(rows).on_conflict_do_nothing()
        session.execute(stmt)


class MatchInfo(BaseModel):
    """Denormalized match details, including the raw participants array."""

    game_id = Column(
        String(100),
        ForeignKey('match.game_id', ondelete='CASCADE', onupdate='CASCADE'),
        primary_key=True
    )
    game_creation = Column(DateTime, nullable=False)
    game_duration = Column(Integer, nullable=False)  # seconds
    game_start_timestamp = Column(DateTime, nullable=False)
    game_end_timestamp = Column(DateTime, nullable=False)
    game_mode = Column(String(50), nullable=False)  # e.g. 'CLASSIC', 'CHERRY'
    game_name = Column(String(100), nullable=False, default='')
    game_type = Column(String(50), nullable=False)  # e.g. 'MATCHED_GAME'
    game_version = Column(String(50), nullable=False, default='')
    map_id = Column(Integer, nullable=False)
    platform_id = Column(String(10), nullable=False, default='')
    queue_id = Column(Integer, nullable=False)
    tournament_code = Column(String(100), nullable=False, default='')

    participants = Column(JSONType, nullable=False)
    teams = Column(JSONType, nullable=False)

    match = relationship("Match", back_populates="info")

    __table_args__ = (
        Index('ix_match_info_map_mode_start', 'map_id', 'game_mode', 'game_start_timestamp'),
    )

    def __repr__(self):
        return f"<MatchInfo(game_id={self.game_id}, mode={self.game_mode}, queue={self.queue_id})>"
