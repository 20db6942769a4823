"""SQLAlchemy database models for NoteVault."""
from typing import Optional

from sqlalchemy import (BigInteger, Column, ForeignKey, Index, Integer, String,
                        Text, UniqueConstraint, create_engine, event)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from notevault.config import config

# Create base class for SQLAlchemy models
Base = declarative_base()

# Execution option that marks a connection as the start of a write transaction.
# On SQLite it turns the transaction's BEGIN into BEGIN IMMEDIATE.
WRITE_TRANSACTION_OPTION = "notevault_write"


class DBNote(Base):
    """Database model for the current state of a note."""
    __tablename__ = "notes"
    id = Column(String(26), primary_key=True)
    owner_id = Column(String(255), nullable=False)
    title = Column(String(500), nullable=False)
    body = Column(Text, nullable=False, default="")
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)
    deleted_at = Column(BigInteger, nullable=True)

    versions = relationship(
        "DBNoteVersion", back_populates="note", passive_deletes=True
    )

    # Covers the active listing, search and (updated_at, id) cursor scans
    __table_args__ = (
        Index("ix_notes_owner_listing", "owner_id", "deleted_at", "updated_at", "id"),
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id='{self.id}', title='{self.title}')>"


class DBNoteVersion(Base):
    """Database model for an immutable snapshot of a note."""
    __tablename__ = "note_versions"
    id = Column(String(26), primary_key=True)
    note_id = Column(String(26), ForeignKey("notes.id"), nullable=False)
    owner_id = Column(String(255), nullable=False)
    sequence = Column(Integer, nullable=False)
    title = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    source_updated_at = Column(BigInteger, nullable=False)
    created_at = Column(BigInteger, nullable=False)
    event = Column(String(20), nullable=False)

    note = relationship("DBNote", back_populates="versions")

    # Two writers computing the same next sequence must not both succeed
    __table_args__ = (
        UniqueConstraint("note_id", "sequence", name="uq_note_versions_sequence"),
        Index("ix_note_versions_owner_note", "owner_id", "note_id"),
    )

    def __repr__(self) -> str:
        """Return string representation of version."""
        return (
            f"<NoteVersion(id='{self.id}', note='{self.note_id}', "
            f"seq={self.sequence}, event='{self.event}')>"
        )


def _install_sqlite_transaction_hooks(engine: Engine, in_memory: bool) -> None:
    """Take over transaction control from pysqlite.

    pysqlite's implicit BEGIN is deferred, so two writers that both read a note
    first would only collide when upgrading to a write lock, and one of them
    fails immediately without waiting. Emitting our own BEGIN lets write
    transactions use BEGIN IMMEDIATE: the write lock is taken up front and a
    second writer waits (up to the connect timeout) instead.
    """

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        # Stop pysqlite from emitting BEGIN/COMMIT on its own
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        if not in_memory:
            # WAL mode: readers never block the single writer
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        if conn.get_execution_options().get(WRITE_TRANSACTION_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def init_db(
    db_url: Optional[str] = None,
    lock_timeout: Optional[float] = None,
) -> Engine:
    """Create the engine and the schema.

    Args:
        db_url: SQLAlchemy URL. Defaults to ``config.get_db_url()``.
        lock_timeout: Seconds a SQLite writer waits for the database write
            lock. Defaults to ``config.lock_timeout``.

    Returns:
        The configured engine.
    """
    url = db_url or config.get_db_url()
    timeout = lock_timeout if lock_timeout is not None else config.lock_timeout

    if url.startswith("sqlite"):
        in_memory = url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url
        connect_args = {"timeout": timeout, "check_same_thread": False}
        if in_memory:
            # One shared connection, otherwise every checkout sees an empty db
            engine = create_engine(
                url, connect_args=connect_args, poolclass=StaticPool
            )
        else:
            engine = create_engine(
                url,
                connect_args=connect_args,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_pre_ping=True,
            )
        _install_sqlite_transaction_hooks(engine, in_memory)
    else:
        engine = create_engine(url, pool_pre_ping=True)

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine=None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine, expire_on_commit=False)
