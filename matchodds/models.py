"""
Database models for the Match Odds API
SQLAlchemy ORM (SQLite by default, any SQLAlchemy URL via DATABASE_URL)
"""

import enum
import logging
import os
from contextlib import contextmanager

from dotenv import load_dotenv
from sqlalchemy import (
    create_engine,
    event,
    Column,
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from matchodds.core.errors import ConflictError

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./matchodds.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"


def build_engine(url: str, **kwargs):
    """Create an engine; SQLite connections get FK enforcement switched on."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})

    eng = create_engine(url, pool_pre_ping=True, echo=SQL_ECHO, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(eng, "connect")
        def _enable_foreign_keys(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return eng


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db):
    """
    Commit everything done inside the block, or nothing.

    IntegrityError at flush or commit is re-raised as ConflictError; any
    other exception is re-raised unchanged after the rollback.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity violation, rolled back: %s", exc.orig)
        raise ConflictError("Database constraint violation") from exc
    except Exception:
        db.rollback()
        raise


class Sport(enum.Enum):
    """Sport classifier; the value is the numeric code used on the wire."""

    FOOTBALL = 1
    BASKETBALL = 2

    @property
    def code(self) -> int:
        return self.value

    @classmethod
    def from_code(cls, code: int) -> "Sport":
        for sport in cls:
            if sport.value == code:
                return sport
        raise ValueError(f"Invalid sport value: {code}")


class Match(Base):
    """A scheduled event that owns its odds"""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(255), nullable=False)
    match_date = Column(Date, nullable=False)
    match_time = Column(Time, nullable=False)
    team_a = Column(String(100), nullable=False)
    team_b = Column(String(100), nullable=False)
    sport = Column(Enum(Sport, name="sport", native_enum=False, length=16), nullable=False)

    __table_args__ = {"sqlite_autoincrement": True}

    # Owning side: removing an odds row from this list deletes it
    odds = relationship(
        "MatchOdds",
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="MatchOdds.id",
    )

    def __repr__(self):
        return f"<Match id={self.id} {self.description!r}>"


class MatchOdds(Base):
    """A priced outcome, unique per match by specifier"""

    __tablename__ = "match_odds"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(
        Integer,
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    specifier = Column(String(16), nullable=False)
    odd = Column(Numeric(6, 3), nullable=False)

    # Relationship
    match = relationship("Match", back_populates="odds")

    # Freed ids are never reissued on SQLite
    __table_args__ = (
        UniqueConstraint("match_id", "specifier", name="uk_match_specifier"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<MatchOdds id={self.id} match_id={self.match_id} {self.specifier!r}={self.odd}>"


def init_db(bind=None):
    """Initialize database tables"""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
