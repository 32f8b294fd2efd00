"""
User model for library administrators.
"""
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship

from ..database import Base


class User(Base):
    """
    A library staff account.

    Users upload ebooks and curate programs. Visitors browsing the
    catalog are anonymous and have no row here.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    firstname = Column(String(100), nullable=False)
    lastname = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    programs = relationship("Program", back_populates="creator")
    ebooks = relationship("Ebook", back_populates="uploader")

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}"

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
