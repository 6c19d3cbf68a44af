"""Challenge models: Riot-scored progress, static config, and achievement sets."""
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, DateTime, ForeignKey, Table, Text
)
from sqlalchemy.orm import relationship

from .base import Base, BaseModel, JSONType


def _achievement_table(name: str) -> Table:
    """Join table recording which champions satisfy a custom challenge for a player."""
    return Table(
        name,
        Base.metadata,
        Column("puuid", String(78), ForeignKey("challenges.puuid", ondelete="CASCADE", onupdate="CASCADE"), primary_key=True),
        Column("champion_id", Integer, ForeignKey("champion_details.id", ondelete="CASCADE", onupdate="CASCADE"), primary_key=True, index=True),
    )


challenge_heroes = _achievement_table("challenge_heroes")
challenges_champion_ocean = _achievement_table("challenges_champion_ocean")
challenges_champion_ocean_2024_split3 = _achievement_table("challenges_champion_ocean_2024_split3")
challenges_adapt_to_all_situations = _achievement_table("challenges_adapt_to_all_situations")
challenges_invincible = _achievement_table("challenges_invincible")


class Challenges(BaseModel):
    """Root of a player's locally computed achievement sets."""

    puuid = Column(
        String(78),
        ForeignKey('summoner.puuid', ondelete='RESTRICT', onupdate='CASCADE'),
        primary_key=True
    )

    heroes = relationship("ChampionDetails", secondary=challenge_heroes, viewonly=True)
    champion_ocean = relationship("ChampionDetails", secondary=challenges_champion_ocean, viewonly=True)
    champion_ocean_2024_split3 = relationship("ChampionDetails", secondary=challenges_champion_ocean_2024_split3, viewonly=True)
    adapt_to_all_situations = relationship("ChampionDetails", secondary=challenges_adapt_to_all_situations, viewonly=True)
    invincible = relationship("ChampionDetails", secondary=challenges_invincible, viewonly=True)

    def __repr__(self):
        return f"<Challenges(puuid={self.puuid})>"


class ChallengesDetails(BaseModel):
    """Root of Riot's own challenge scoring for a player."""

    puuid = Column(
        String(78),
        ForeignKey('summoner.puuid', ondelete='RESTRICT', onupdate='CASCADE'),
        primary_key=True
    )
    created_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)

    total_points = relationship("TotalPoints", uselist=False, back_populates="details")
    category_points = relationship("CategoryPoints", back_populates="details")
    challenges = relationship("Challenge", back_populates="details")
    preferences = relationship("Preferences", uselist=False, back_populates="details")

    def __repr__(self):
        return f"<ChallengesDetails(puuid={self.puuid})>"


class TotalPoints(BaseModel):
    challenges_details_id = Column(
        String(78),
        ForeignKey('challenges_details.puuid', ondelete='RESTRICT', onupdate='CASCADE'),
        primary_key=True
    )
    level = Column(String(20), nullable=False)
    current = Column(Integer, nullable=False)
    max = Column(Integer, nullable=False)

    details = relationship("ChallengesDetails", back_populates="total_points")


class CategoryPoints(BaseModel):
    challenges_details_id = Column(
        String(78),
        ForeignKey('challenges_details.puuid', ondelete='RESTRICT', onupdate='CASCADE'),
        primary_key=True
    )
    category = Column(String(30), primary_key=True)
    level = Column(String(20), nullable=False)
    current = Column(Integer, nullable=False)
    max = Column(Integer, nullable=False)
    percentile = Column(Float, nullable=False, default=-1)

    details = relationship("ChallengesDetails", back_populates="category_points")


class Challenge(BaseModel):
    """Riot's scoring of one challenge for one player."""

    challenges_details_id = Column(
        String(78),
        ForeignKey('challenges_details.puuid', ondelete='RESTRICT', onupdate='CASCADE'),
        primary_key=True
    )
    challenge_id = Column(Integer, primary_key=True)
    percentile = Column(Float, nullable=True)
    level = Column(String(20), nullable=True)
    value = Column(Float, nullable=True)
    achieved_time = Column(DateTime, nullable=True)

    details = relationship("ChallengesDetails", back_populates="challenges")

    def __repr__(self):
        return f"<Challenge(id={self.challenge_id}, level={self.level}, value={self.value})>"


class Preferences(BaseModel):
    challenges_details_id = Column(
        String(78),
        ForeignKey('challenges_details.puuid', ondelete='RESTRICT', onupdate='CASCADE'),
        primary_key=True
    )
    banner_accent = Column(String(20), nullable=False, default='')
    title = Column(String(50), nullable=False, default='')
    challenge_ids = Column(JSONType, nullable=False, default=list)

    details = relationship("ChallengesDetails", back_populates="preferences")


class ChallengesConfig(BaseModel):
    """Global challenge metadata, refreshed wholesale from Riot."""

    id = Column(Integer, primary_key=True, autoincrement=False)
    state = Column(String(20), nullable=True)
    leaderboard = Column(Boolean, nullable=False, default=False)
    end_timestamp = Column(DateTime, nullable=True)
    thresholds = Column(JSONType, nullable=False, default=dict)
    parent_id = Column(Integer, nullable=True)

    localizations = relationship("ChallengeLocalization", back_populates="config",
                                 cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<ChallengesConfig(id={self.id}, state={self.state})>"


class ChallengeLocalization(BaseModel):
    id = Column(
        Integer,
        ForeignKey('challenges_config.id', ondelete='CASCADE', onupdate='CASCADE'),
        primary_key=True
    )
    language = Column(String(10), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default='')
    short_description = Column(Text, nullable=False, default='')

    config = relationship("ChallengesConfig", back_populates="localizations")
