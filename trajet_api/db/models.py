"""SQLAlchemy models for principals (riders, drivers) and trajets."""
from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    JSON,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class PrincipalMixin:
    """Columns shared by every account kind subject to the verification lifecycle."""

    id = Column(String(32), primary_key=True, default=_new_id)
    username = Column(String(150), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=False)
    phone_number = Column(String(32), nullable=True)
    roles = Column(JSON, nullable=False, default=lambda: ["user"])
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_code = Column(String(16), nullable=True)
    verification_code_expires = Column(DateTime(timezone=True), nullable=True)
    # sha256 of the reset token, never the raw token
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class User(PrincipalMixin, Base):
    __tablename__ = "users"

    fcm_token = Column(Text, nullable=True)


class Driver(PrincipalMixin, Base):
    __tablename__ = "drivers"

    trajets = relationship("Trajet", back_populates="driver")


class Trajet(Base):
    __tablename__ = "trajets"

    id = Column(String(32), primary_key=True, default=_new_id)
    point_ramassage = Column(String(255), nullable=False, index=True)
    point_livraison = Column(String(255), nullable=False, index=True)
    mode_transport = Column(String(64), nullable=False)
    date_traject = Column(DateTime(timezone=True), nullable=False, index=True)
    driver_id = Column(String(32), ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True, index=True)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    driver = relationship("Driver", back_populates="trajets")
