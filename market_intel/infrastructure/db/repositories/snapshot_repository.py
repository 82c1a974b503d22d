"""Persistence for daily historical snapshots."""

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from market_intel.domain.models import (
    EventType,
    HistoricalSnapshot,
    ImpactLevel,
    MarketEvent,
    TechnicalIndicators,
    Trend,
    TrendStrength,
    VolatilityLevel,
    to_primitive,
)
from market_intel.infrastructure.db.models import HistoricalSnapshotModel
from market_intel.utils.time import IST, now_ist_naive


class SqlSnapshotRepository:
    def __init__(self, session: AsyncSession, max_days: int = 365):
        self.session = session
        self.max_days = max_days

    async def save_snapshot(self, snapshot: HistoricalSnapshot) -> int:
        """Upsert by date, then trim to the newest ``max_days`` rows."""
        captured_at = snapshot.timestamp
        if captured_at.tzinfo is not None:
            # Normalize to IST naive for DB storage
            captured_at = captured_at.astimezone(IST).replace(tzinfo=None)

        result = await self.session.execute(
            select(HistoricalSnapshotModel).where(HistoricalSnapshotModel.date == snapshot.date)
        )
        model = result.scalar_one_or_none()
        if model is None:
            model = HistoricalSnapshotModel(date=snapshot.date, created_at=now_ist_naive())
            self.session.add(model)

        model.captured_at = captured_at
        model.vix = Decimal(str(snapshot.vix))
        model.nifty_spot = Decimal(str(snapshot.nifty_spot))
        model.nifty_change_percent = Decimal(str(snapshot.nifty_change_percent))
        model.trend = snapshot.trend.value
        model.trend_strength = snapshot.trend_strength.value
        model.volatility_level = snapshot.volatility_level.value
        model.top_recommendation = snapshot.top_recommendation
        model.recommendation_score = snapshot.recommendation_score
        model.technical_indicators = to_primitive(snapshot.technical_indicators)
        model.events = to_primitive(snapshot.events)
        model.outcome = Decimal(str(snapshot.outcome)) if snapshot.outcome is not None else None

        await self.session.flush()
        await self._trim()
        return model.id

    async def _trim(self) -> None:
        excess = await self.count() - self.max_days
        if excess <= 0:
            return
        oldest = await self.session.execute(
            select(HistoricalSnapshotModel.id)
            .order_by(HistoricalSnapshotModel.date.asc())
            .limit(excess)
        )
        ids = list(oldest.scalars().all())
        await self.session.execute(
            delete(HistoricalSnapshotModel).where(HistoricalSnapshotModel.id.in_(ids))
        )
        await self.session.flush()

    async def set_outcome(self, day: date_type, pnl: float) -> bool:
        result = await self.session.execute(
            select(HistoricalSnapshotModel).where(HistoricalSnapshotModel.date == day)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return False
        model.outcome = Decimal(str(pnl))
        await self.session.flush()
        return True

    async def count(self) -> int:
        return int(await self.session.scalar(select(func.count(HistoricalSnapshotModel.id))) or 0)

    async def get_recent(self, limit: int = 30) -> List[HistoricalSnapshot]:
        """Newest ``limit`` snapshots, returned oldest first."""
        result = await self.session.execute(
            select(HistoricalSnapshotModel)
            .order_by(HistoricalSnapshotModel.date.desc())
            .limit(limit)
        )
        rows = list(result.scalars().all())
        return [_to_snapshot(r) for r in reversed(rows)]


def _to_snapshot(row: HistoricalSnapshotModel) -> HistoricalSnapshot:
    indicators = None
    if row.technical_indicators:
        indicators = TechnicalIndicators(**{
            **row.technical_indicators,
            "trend_strength": TrendStrength(row.technical_indicators["trend_strength"]),
        })
    events = [
        MarketEvent(
            type=EventType(e["type"]),
            name=e["name"],
            date=datetime.fromisoformat(e["date"]),
            days_until=e["days_until"],
            impact=ImpactLevel(e["impact"]),
            description=e["description"],
            source=e.get("source"),
        )
        for e in row.events or []
    ]
    return HistoricalSnapshot(
        date=row.date,
        timestamp=row.captured_at.replace(tzinfo=IST),
        vix=float(row.vix),
        nifty_spot=float(row.nifty_spot),
        nifty_change_percent=float(row.nifty_change_percent),
        trend=Trend(row.trend),
        trend_strength=TrendStrength(row.trend_strength),
        volatility_level=VolatilityLevel(row.volatility_level),
        technical_indicators=indicators,
        top_recommendation=row.top_recommendation,
        recommendation_score=row.recommendation_score,
        events=events,
        outcome=float(row.outcome) if row.outcome is not None else None,
    )


class SqlSnapshotSink:
    """Snapshot sink backed by the database. One transaction per snapshot."""

    def __init__(self, session_factory: async_sessionmaker, max_days: int = 365):
        self.session_factory = session_factory
        self.max_days = max_days

    async def store_snapshot(self, snapshot: HistoricalSnapshot) -> None:
        async with self.session_factory() as session:
            repo = SqlSnapshotRepository(session, self.max_days)
            await repo.save_snapshot(snapshot)
            await session.commit()

    async def record_outcome(self, day: date_type, pnl: float) -> bool:
        async with self.session_factory() as session:
            updated = await SqlSnapshotRepository(session, self.max_days).set_outcome(day, pnl)
            await session.commit()
            return updated

    async def load_recent(self, limit: int) -> List[HistoricalSnapshot]:
        async with self.session_factory() as session:
            return await SqlSnapshotRepository(session, self.max_days).get_recent(limit)
