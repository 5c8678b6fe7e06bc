"""SQLAlchemy models for the vyaparsync server.

This module defines the database schema using SQLAlchemy ORM:
- Accounts: users, companies and API tokens
- Business entities that accept offline mutations (bills, customers, products, payments)
- The offline sync queue
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


# === Accounts ===


class User(Base):
    """Represents an API user."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    tokens: Mapped[list[Token]] = relationship(
        "Token", back_populates="user", cascade="all, delete-orphan"
    )
    companies: Mapped[list[Company]] = relationship("Company", back_populates="owner")


class Company(Base):
    """Represents a company (tenant) owned by a user."""

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    gstin: Mapped[str | None] = mapped_column(String(20), nullable=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    owner: Mapped[User] = relationship("User", back_populates="companies")


class Token(Base):
    """Represents an API bearer token."""

    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="tokens")

    # Indexes
    __table_args__ = (Index("idx_tokens_hash", "token_hash"),)


# === Business entities ===


class EntityMixin:
    """Columns shared by every entity that accepts offline mutations.

    ``id`` is supplied by the client (the sync operation's record id) so a
    record created offline keeps its identity once synced.
    """

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    company_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class Customer(EntityMixin, Base):
    """Represents a customer of a company."""

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str | None] = mapped_column(String(128), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    gstin: Mapped[str | None] = mapped_column(String(20), nullable=True)
    balance: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), default=0)


class Bill(EntityMixin, Base):
    """Represents a bill (invoice) issued to a customer."""

    __tablename__ = "bills"

    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(128), nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    items: Mapped[list[Any]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="unpaid", nullable=False)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Product(EntityMixin, Base):
    """Represents a product in a company's catalogue."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hsn_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    price: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), default=0)
    tax_rate: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), default=0)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit: Mapped[str | None] = mapped_column(String(16), nullable=True)


class Payment(EntityMixin, Base):
    """Represents a payment received against a bill."""

    __tablename__ = "payments"

    bill_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("bills.id"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    mode: Mapped[str] = mapped_column(String(32), default="cash", nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="completed", nullable=False)
    reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)


# === Offline sync queue ===


class SyncOperation(Base):
    """A mutation queued by an offline client.

    ``conflict_data`` is only populated while ``status`` is ``conflict`` and
    ``error`` only while it is ``failed``. Rows are kept after they settle.
    """

    __tablename__ = "offline_sync"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[str] = mapped_column(String(36), nullable=False)
    table_name: Mapped[str] = mapped_column(String(64), nullable=False)
    record_id: Mapped[str] = mapped_column(String(64), nullable=False)
    operation: Mapped[str] = mapped_column(String(16), nullable=False)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)
    device_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    conflict_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Indexes
    __table_args__ = (
        Index("idx_offline_sync_owner_status", "user_id", "company_id", "status"),
        Index("idx_offline_sync_created", "created_at"),
    )
