"""Global champion reference data from Data Dragon."""
from sqlalchemy import Column, String, Integer, Text

from .base import BaseModel, JSONType, upsert_insert


class ChampionDetails(BaseModel):
    """Static champion data keyed by numeric champion id; refreshed per patch."""

    id = Column(Integer, primary_key=True, autoincrement=False)
    version = Column(String(20), nullable=True)
    key = Column(String(50), nullable=False)  # Data Dragon id, e.g. 'MonkeyKing'
    name = Column(String(50), nullable=False)
    title = Column(String(100), nullable=False, default='')
    blurb = Column(Text, nullable=False, default='')

    # info ratings
    attack = Column(Integer, nullable=False, default=0)
    defense = Column(Integer, nullable=False, default=0)
    magic = Column(Integer, nullable=False, default=0)
    difficulty = Column(Integer, nullable=False, default=0)

    # image
    full = Column(String(100), nullable=False, default='')
    sprite = Column(String(100), nullable=False, default='')
    group = Column(String(50), nullable=False, default='')
    x = Column(Integer, nullable=False, default=0)
    y = Column(Integer, nullable=False, default=0)
    w = Column(Integer, nullable=False, default=0)
    h = Column(Integer, nullable=False, default=0)

    tags = Column(JSONType, nullable=False, default=list)
    partype = Column(String(50), nullable=False, default='')
    stats = Column(JSONType, nullable=False, default=dict)

    def __repr__(self):
        return f"<ChampionDetails(id={self.id}, name='{self.name}', version={self.version})>"

    @classmethod
    def upsert_many(cls, session, rows: list) -> int:
        if not rows:
            return 0
        stmt = upsert_insert(session, cls).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[cls.id],
            set_={column.name: stmt.excluded[column.name] for column in cls.__table__.columns if column.name != 'id'}
        )
        session.execute(stmt)
        return len(rows)

    @classmethod
    def current_version(cls, session):
        """Patch version of the stored champion data, or None if never synced."""
        return session.query(cls.version).filter(cls.version.isnot(None)).limit(1).scalar()
