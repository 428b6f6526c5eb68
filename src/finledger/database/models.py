"""SQLAlchemy models for finledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Chart of accounts model."""

    __tablename__ = "accounts"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False, index=True)
    subtype = Column(String, nullable=False, default="")
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_system = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    modified_at = Column(DateTime, nullable=True)


class JournalEntry(Base):
    """Journal entry header model."""

    __tablename__ = "journal_entries"

    id = Column(String, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    notes = Column(String, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    entry_type = Column(String, nullable=False, default="transaction")
    flow_type = Column(String, nullable=True)
    balance_check = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    modified_at = Column(DateTime, nullable=True)
    modified_reason = Column(String, nullable=True)
    source_id = Column(String, nullable=True, index=True)

    # Relationships
    lines = relationship(
        "JournalLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.position",
    )


class JournalLine(Base):
    """Journal entry line item model."""

    __tablename__ = "journal_lines"

    id = Column(Integer, primary_key=True)
    entry_id = Column(String, ForeignKey("journal_entries.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False, index=True)
    debit = Column(Numeric(14, 2), nullable=False, default=0)
    credit = Column(Numeric(14, 2), nullable=False, default=0)

    # Relationships
    entry = relationship("JournalEntry", back_populates="lines")


class LegacyTransaction(Base):
    """Legacy single-entry transaction model (migration input)."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True)
    txn_type = Column(String, nullable=True)
    amount = Column(String, nullable=True)
    category = Column(String, nullable=True)
    date = Column(String, nullable=True)
    notes = Column(String, nullable=False, default="")
    created_at = Column(String, nullable=True)


class MigrationBackup(Base):
    """Snapshot of legacy transactions taken before a migration."""

    __tablename__ = "migration_backups"

    id = Column(String, primary_key=True)
    label = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    count = Column(Integer, nullable=False)
    data = Column(JSON, nullable=False)


class Setting(Base):
    """Key/value settings, used for migration markers."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
