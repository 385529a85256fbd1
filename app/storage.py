import logging
from datetime import datetime
from typing import Generator, List, Optional

from sqlalchemy import create_engine, or_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import settings
from app.errors import PersistenceError
from app.utils import utc_now

logger = logging.getLogger(__name__)

# check_same_thread=False is required for SQLite to work with FastAPI's threadpool
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    echo=False,
)

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup; safe to call repeatedly.
    """
    logger.debug(f"Initializing database with URL: {settings.DATABASE_URL}")
    try:
        # Import models to register them with Base.metadata
        from app.models import Submission  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and the submissions table exists.

    Returns:
        True if DB is healthy and schema exists, False otherwise.
    """
    logger.debug("Checking database health...")
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            result = db.execute(text(
                "SELECT COUNT(*) FROM sqlite_master WHERE type='table' AND name='form_submissions'"
            )).scalar()
            if result == 0:
                logger.error("Database schema not applied: 'form_submissions' table not found")
                return False
        logger.debug("Database health check passed")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# Submission Repository Functions
# =============================================================================

def create_submission(
    db: Session,
    name: str,
    phone: str,
    email: Optional[str] = None,
    company: Optional[str] = None,
    message: Optional[str] = None,
):
    """
    Insert a new submission.

    The id and created_at are assigned in the same commit as the row.

    Returns:
        The persisted Submission with id populated

    Raises:
        PersistenceError: If the row could not be written
    """
    from app.models import Submission

    logger.info(f"Creating submission: name={name}, phone={phone}")
    logger.debug(f"Submission details: email={email}, company={company}, message={message}")

    submission = Submission(
        name=name,
        email=email,
        phone=phone,
        company=company,
        message=message,
        created_at=utc_now(),
    )

    try:
        db.add(submission)
        db.commit()
        db.refresh(submission)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create submission for {phone}: {e}")
        raise PersistenceError("Error saving form data") from e

    logger.info(f"Submission created successfully: {submission.id}")
    return submission


def get_submissions(db: Session, q: Optional[str] = None) -> List:
    """
    Retrieve all submissions, newest first.

    Args:
        db: Database session
        q: Optional case-insensitive search over every text column

    Raises:
        PersistenceError: If the table could not be read
    """
    from app.models import Submission

    logger.info(f"Querying submissions: q={q}")

    query = db.query(Submission)

    if q:
        pattern = f"%{q}%"
        query = query.filter(or_(
            Submission.name.ilike(pattern),
            Submission.email.ilike(pattern),
            Submission.phone.ilike(pattern),
            Submission.company.ilike(pattern),
            Submission.message.ilike(pattern),
        ))
        logger.debug(f"Applied text search filter: {q}")

    return _fetch_newest_first(query)


def get_submissions_between(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List:
    """
    Retrieve submissions whose created_at lies in [start, end], newest first.

    Either bound may be None for an open-ended range; with both absent
    this is the same as get_submissions. Bounds are naive UTC.

    Raises:
        PersistenceError: If the table could not be read
    """
    from app.models import Submission

    logger.info(f"Querying submissions between: start={start}, end={end}")

    query = db.query(Submission)

    if start is not None:
        query = query.filter(Submission.created_at >= start)
    if end is not None:
        query = query.filter(Submission.created_at <= end)

    return _fetch_newest_first(query)


def _fetch_newest_first(query) -> List:
    from app.models import Submission

    try:
        rows = query.order_by(Submission.created_at.desc(), Submission.id.desc()).all()
    except SQLAlchemyError as e:
        logger.error(f"Failed to read submissions: {e}")
        raise PersistenceError("Error fetching submissions") from e

    logger.info(f"Retrieved {len(rows)} submissions")
    return rows
