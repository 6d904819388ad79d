from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    # always stored lowercase, login compares case-insensitively
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, server_default="user")
    age = Column(Integer, nullable=True)
    image = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    events = relationship("Event", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    registrations = relationship("UserEvent", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
