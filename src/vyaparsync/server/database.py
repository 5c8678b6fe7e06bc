"""Server database using SQLAlchemy with SQLite.

This module provides:
- Engine and session management shared by the sync components
- User and company management
- Token-based authentication
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, delete, event, or_, select
from sqlalchemy.orm import Session

from vyaparsync.server.models import Base, Company, Token, User

if TYPE_CHECKING:
    from sqlalchemy import Engine


def hash_token(token: str) -> str:
    """Hash a token using SHA-256.

    Args:
        token: Raw token string.

    Returns:
        Hex-encoded SHA-256 hash.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    Naive values (as read back from SQLite) are taken to be UTC; aware values
    are converted, since SQLite drops the offset on write.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _enable_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """SQLAlchemy database for server data.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # check_same_thread=False: FastAPI runs sync endpoints in a threadpool
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # foreign_keys is a per-connection pragma
        event.listen(self._engine, "connect", _enable_foreign_keys)

        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        """Path of the SQLite database file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === User operations ===

    def create_user(self, name: str, email: str) -> User:
        """Create a new user.

        Args:
            name: Display name.
            email: Unique email address.

        Returns:
            Created User object.

        Raises:
            IntegrityError: If email already exists.
        """
        with self.session() as session:
            user = User(name=name, email=email)
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user

    def get_user(self, user_id: int) -> User | None:
        """Get a user by ID."""
        with self.session() as session:
            user = session.get(User, user_id)
            if user:
                session.expunge(user)
            return user

    def get_user_by_email(self, email: str) -> User | None:
        """Get a user by email address."""
        with self.session() as session:
            stmt = select(User).where(User.email == email)
            user = session.execute(stmt).scalar_one_or_none()
            if user:
                session.expunge(user)
            return user

    # === Company operations ===

    def create_company(self, name: str, owner_id: int, gstin: str | None = None) -> Company:
        """Create a company owned by a user.

        Args:
            name: Company name.
            owner_id: ID of the owning user.
            gstin: Optional GST identification number.

        Returns:
            Created Company object.
        """
        with self.session() as session:
            company = Company(name=name, owner_id=owner_id, gstin=gstin)
            session.add(company)
            session.commit()
            session.refresh(company)
            session.expunge(company)
            return company

    def get_company(self, company_id: str) -> Company | None:
        """Get a company by ID."""
        with self.session() as session:
            company = session.get(Company, company_id)
            if company:
                session.expunge(company)
            return company

    def get_user_company(self, user_id: int, company_id: str) -> Company | None:
        """Get a company only if it is owned by the given user.

        Returns:
            Company if found and owned by user, None otherwise.
        """
        company = self.get_company(company_id)
        if company is None or company.owner_id != user_id:
            return None
        return company

    def list_companies(self, user_id: int) -> list[Company]:
        """List companies owned by a user."""
        with self.session() as session:
            stmt = select(Company).where(Company.owner_id == user_id).order_by(Company.name)
            companies = list(session.execute(stmt).scalars().all())
            for company in companies:
                session.expunge(company)
            return companies

    # === Token operations ===

    def create_token(
        self,
        user_id: int,
        expires_in: timedelta | None = None,
    ) -> tuple[str, Token]:
        """Create a new authentication token.

        Args:
            user_id: User ID to associate with token.
            expires_in: Optional expiration duration.

        Returns:
            Tuple of (raw_token, Token object).
        """
        raw_token = "vy_" + secrets.token_urlsafe(32)
        token_hash = hash_token(raw_token)
        now = datetime.now(UTC)
        expires_at = (now + expires_in) if expires_in else None

        with self.session() as session:
            token = Token(
                user_id=user_id,
                token_hash=token_hash,
                created_at=now,
                expires_at=expires_at,
            )
            session.add(token)
            session.commit()
            session.refresh(token)
            session.expunge(token)
            return raw_token, token

    def validate_token(self, raw_token: str) -> Token | None:
        """Validate a token and return it if valid.

        Args:
            raw_token: Raw token string.

        Returns:
            Token if valid, None otherwise.
        """
        token_hash = hash_token(raw_token)
        with self.session() as session:
            stmt = select(Token).where(Token.token_hash == token_hash, Token.revoked == False)  # noqa: E712
            token = session.execute(stmt).scalar_one_or_none()

            if token is None:
                return None

            if token.expires_at and as_utc(token.expires_at) < datetime.now(UTC):
                return None

            session.expunge(token)
            return token

    def revoke_token(self, token_id: int) -> None:
        """Revoke a token.

        Args:
            token_id: Token ID to revoke.
        """
        with self.session() as session:
            token = session.get(Token, token_id)
            if token:
                token.revoked = True
                session.commit()

    def cleanup_expired_tokens(self) -> int:
        """Delete expired and revoked tokens.

        Returns:
            Number of tokens deleted.
        """
        now = datetime.now(UTC)
        with self.session() as session:
            stmt = delete(Token).where(
                or_(
                    Token.revoked == True,  # noqa: E712
                    Token.expires_at < now,
                )
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount or 0
