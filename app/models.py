"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text

from app.storage import Base


class Submission(Base):
    """
    SQLAlchemy model for contact-form submissions.

    Table: form_submissions
    Primary Key: id (AUTOINCREMENT, never reused)
    Rows are append-only: nothing updates or deletes them.
    """
    __tablename__ = "form_submissions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=False)
    company = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, index=True)  # naive UTC
