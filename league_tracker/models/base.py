"""Base database models and configuration."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, JSON, MetaData
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import declarative_base, declared_attr

# Use a consistent naming convention for constraints
convention = {
    "ix": 'ix_%(column_0_label)s',
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

# Create base class for all models
Base = declarative_base(metadata=MetaData(naming_convention=convention))

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(postgresql.JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC now; all DateTime columns store naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def upsert_insert(session, model):
    """Dialect specific INSERT supporting ON CONFLICT for ``model``'s table."""
    table = getattr(model, '__table__', model)
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)


class TimestampMixin:
    """Mixin that adds timestamp fields to models."""
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class BaseModel(Base):
    """Base model with common methods. Tables are keyed on natural keys."""
    __abstract__ = True

    @declared_attr
    def __tablename__(cls):
        """Generate __tablename__ automatically.

        Convert CamelCase class name to snake_case table name.
        """
        return ''.join(['_'+i.lower() if i.isupper() else i for i in cls.__name__]).lstrip('_')

    def to_dict(self):
        """Convert model instance to dictionary."""
        return {
            c.name: getattr(self, c.name)
            for c in self.__table__.columns
        }
