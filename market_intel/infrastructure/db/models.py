"""
Database Models (SQLAlchemy ORM)
Daily market intelligence snapshots
"""

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String, JSON

from market_intel.infrastructure.db.database import Base
from market_intel.utils.time import now_ist_naive


class HistoricalSnapshotModel(Base):
    """One row per calendar day - capped to the last 365 days"""
    __tablename__ = "historical_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, unique=True, index=True)
    captured_at = Column(DateTime, nullable=False)
    vix = Column(Numeric(8, 2), nullable=False)
    nifty_spot = Column(Numeric(12, 2), nullable=False)
    nifty_change_percent = Column(Numeric(8, 2), nullable=False)
    trend = Column(String(20), nullable=False)
    trend_strength = Column(String(20), nullable=False)
    volatility_level = Column(String(20), nullable=False)
    top_recommendation = Column(String(50), nullable=True)
    recommendation_score = Column(Integer, nullable=False, default=0)
    technical_indicators = Column(JSON, nullable=True)
    events = Column(JSON, nullable=True)
    outcome = Column(Numeric(14, 2), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_ist_naive)
