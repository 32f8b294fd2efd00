"""
SQLAlchemy ORM models for the library catalog.
Stores academic programs and the ebooks filed under them.
"""
from datetime import datetime

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


DEFAULT_PROGRAM_COLOR = "#3b82f6"


class Program(Base):
    """
    An academic program (e.g. BS Information Technology).

    The acronym is stored upper-case and is unique across programs.
    """
    __tablename__ = "programs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    acronym = Column(String(20), unique=True, nullable=False, index=True)
    color = Column(String(20), default=DEFAULT_PROGRAM_COLOR, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator = relationship("User", back_populates="programs")
    ebooks = relationship("Ebook", back_populates="program")

    def __repr__(self):
        return f"<Program(id={self.id}, acronym={self.acronym})>"


class Ebook(Base):
    """
    An uploaded PDF ebook.

    file_path and cover_image_path are absolute paths under the storage
    root. cover_image_path is null when cover extraction produced nothing.
    """
    __tablename__ = "ebooks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    program_id = Column(Integer, ForeignKey("programs.id"), nullable=True, index=True)
    year_level = Column(Integer, nullable=False)

    # Stored file
    file_name = Column(String(255), nullable=False)  # Original upload name
    file_path = Column(String(1024), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    cover_image_path = Column(String(1024), nullable=True)

    downloads = Column(Integer, default=0, nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    program = relationship("Program", back_populates="ebooks")
    uploader = relationship("User", back_populates="ebooks")

    def __repr__(self):
        return f"<Ebook(id={self.id}, title={self.title}, program_id={self.program_id})>"
