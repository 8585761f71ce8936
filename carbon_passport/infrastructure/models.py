"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``passports``        -- one row per issued carbon passport
* ``routes``           -- enriched legs owned by a passport (cascade delete)
* ``stations``         -- station reference data, seeded from the directory
* ``survey_responses`` -- optional ESG survey, one per passport

The five ``co2_*`` columns on ``routes`` are a snapshot taken when the
route is created; they are read back as-is and never recomputed.

Indexes
-------
* **B-Tree** on ``share_hash`` and ``idempotency_key`` for public / replay
  look-ups, on ``(passport_id, sequence_order)`` for ordered route reads and
  on ``stations.is_active`` for the station listing.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PassportModel(Base):
    __tablename__ = "passports"

    id = Column(String(36), primary_key=True, default=_uuid)
    traveler_name = Column(String(120), nullable=False)
    country = Column(String(2), nullable=False, default="KR")
    photo_url = Column(String(512), nullable=True)
    travel_date = Column(Date, nullable=False)
    share_hash = Column(String(64), unique=True, nullable=False)
    idempotency_key = Column(String(64), unique=True, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    routes = relationship(
        "RouteModel",
        back_populates="passport",
        cascade="all, delete-orphan",
        order_by="RouteModel.sequence_order",
    )
    survey = relationship(
        "SurveyResponseModel",
        back_populates="passport",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __table_args__ = (
        Index("idx_passports_share_hash", "share_hash"),
        Index("idx_passports_idempotency", "idempotency_key"),
    )


class RouteModel(Base):
    __tablename__ = "routes"

    id = Column(String(36), primary_key=True, default=_uuid)
    passport_id = Column(
        String(36),
        ForeignKey("passports.id", ondelete="CASCADE"),
        nullable=False,
    )
    start_station = Column(String(32), nullable=False)
    end_station = Column(String(32), nullable=False)
    distance = Column(Float, nullable=False)
    co2_train = Column(Float, nullable=False)
    co2_car = Column(Float, nullable=False)
    co2_bus = Column(Float, nullable=False)
    co2_airplane = Column(Float, nullable=False)
    co2_saved = Column(Float, nullable=False)
    sequence_order = Column(Integer, nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    passport = relationship("PassportModel", back_populates="routes")

    __table_args__ = (
        Index("idx_routes_passport_sequence", "passport_id", "sequence_order"),
        CheckConstraint("distance >= 0", name="ck_routes_distance_non_negative"),
        CheckConstraint(
            "sequence_order >= 0", name="ck_routes_sequence_non_negative"
        ),
    )


class StationModel(Base):
    __tablename__ = "stations"

    code = Column(String(32), primary_key=True)
    name_ko = Column(String(120), nullable=False)
    name_en = Column(String(120), nullable=False)
    name_ja = Column(String(120), nullable=True)
    name_zh = Column(String(120), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    region = Column(String(32), nullable=True)
    is_primary_hub = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (Index("idx_stations_active", "is_active"),)


class SurveyResponseModel(Base):
    __tablename__ = "survey_responses"

    id = Column(String(36), primary_key=True, default=_uuid)
    passport_id = Column(
        String(36),
        ForeignKey("passports.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    responses = Column(JSON, nullable=False, default=dict)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    passport = relationship("PassportModel", back_populates="survey")
