"""
Database session management with connection pooling.

Provides a shared FastAPI dependency for database sessions across all routes.
Every statement is bounded by DB_STATEMENT_TIMEOUT_MS on PostgreSQL so a
stalled datastore surfaces as a 500-class failure instead of hanging an
authorization decision.

Usage:
    from que_accounting.database.session import get_db_session

    @router.get("/items")
    def get_items(db: Session = Depends(get_db_session)):
        return db.query(Item).all()
"""

import logging
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from fastapi import HTTPException, status

from que_accounting.config.settings import get_settings

logger = logging.getLogger(__name__)

# Module-level engine singleton
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _get_database_url() -> str:
    database_url = get_settings().database.url
    if not database_url:
        raise ValueError("DATABASE_URL environment variable is not set")
    return database_url


def get_engine() -> Engine:
    """
    Get or create the database engine singleton.

    Uses connection pooling with sensible defaults for production:
    - pool_size: 5 connections
    - max_overflow: 10 additional connections under load
    - pool_pre_ping: Verify connections before use
    - statement_timeout: server-side bound on every statement (PostgreSQL)
    """
    global _engine
    if _engine is None:
        try:
            database_url = _get_database_url()
        except ValueError as e:
            logger.error("Failed to create database engine", extra={"error": str(e)})
            raise

        connect_args = {}
        if database_url.startswith("postgresql"):
            timeout_ms = get_settings().database.statement_timeout_ms
            connect_args["options"] = f"-c statement_timeout={timeout_ms}"

        _engine = create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=1800,
            connect_args=connect_args,
        )
        logger.info("Database engine created with connection pooling")
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the session factory singleton."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(),
        )
    return _SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Creates a new session for each request and ensures proper cleanup.
    Uncommitted work is rolled back when the request ends.
    Raises HTTP 503 if database is not configured.
    """
    try:
        SessionLocal = get_session_factory()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured"
        )

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

