"""
SQL Store

SQLAlchemy-backed adapter. Each collection is one row in the
`collections` table holding a JSON document.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from voicetasks.errors import StorageError
from voicetasks.storage.base import DocumentStore


class Base(DeclarativeBase):
    """Base class for all tables."""
    pass


class Collection(Base):
    """One keyed JSON document."""
    __tablename__ = "collections"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    document: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )

    def __repr__(self) -> str:
        return f"<Collection {self.key!r}>"


class SQLStore(DocumentStore):
    """
    Persistence adapter over a SQLAlchemy engine.

    Tables are created on construction.
    """

    def __init__(self, url: str = "sqlite:///:memory:", echo: bool = False):
        """
        Initialize the store.

        Args:
            url: SQLAlchemy database URL
            echo: Log emitted SQL
        """
        self.url = url
        self.engine = create_engine(url, echo=echo)
        self.SessionLocal = sessionmaker(bind=self.engine)

        Base.metadata.create_all(self.engine)

    def _get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def _read(self, key: str) -> Optional[str]:
        try:
            with self._get_session() as session:
                row = session.get(Collection, key)
                return row.document if row else None
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def _write(self, key: str, document: str) -> None:
        try:
            with self._get_session() as session:
                session.merge(Collection(key=key, document=document))
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def close(self) -> None:
        self.engine.dispose()
