"""
Market Intelligence routes - assessment, scheduler status, history.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from market_intel.domain.services.market_intelligence_service import MarketIntelligenceService
from market_intel.scheduler.adaptive_scheduler import AdaptiveScheduler

router = APIRouter()


class OutcomeUpdate(BaseModel):
    day: date
    pnl: float


def get_intelligence_service(request: Request) -> MarketIntelligenceService:
    service = getattr(request.app.state, "intelligence_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Market intelligence service not initialized")
    return service


def get_adaptive_scheduler(request: Request) -> Optional[AdaptiveScheduler]:
    return getattr(request.app.state, "adaptive_scheduler", None)


@router.get("")
async def get_market_intelligence(
    service: MarketIntelligenceService = Depends(get_intelligence_service),
    scheduler: Optional[AdaptiveScheduler] = Depends(get_adaptive_scheduler),
):
    """Latest market intelligence (cached within TTL)."""
    result = await service.analyze()
    payload = result.to_dict()
    payload["scheduler"] = scheduler.status() if scheduler else None
    payload["ai_enabled"] = bool(service.insight_engine and service.insight_engine.llm_enabled)
    return payload


@router.get("/scheduler")
async def scheduler_status(scheduler: Optional[AdaptiveScheduler] = Depends(get_adaptive_scheduler)):
    if scheduler is None:
        return {"enabled": False}
    return {"enabled": True, **scheduler.status()}


@router.post("/cache/clear")
async def clear_cache(service: MarketIntelligenceService = Depends(get_intelligence_service)):
    service.clear_cache()
    return {"cleared": True}


@router.post("/history/outcome")
async def record_outcome(
    payload: OutcomeUpdate,
    service: MarketIntelligenceService = Depends(get_intelligence_service),
):
    """Attach realised P&L to a stored daily snapshot."""
    recorded = await service.record_outcome(payload.day, payload.pnl)
    if not recorded:
        raise HTTPException(status_code=404, detail=f"No snapshot stored for {payload.day.isoformat()}")
    return {"date": payload.day.isoformat(), "pnl": payload.pnl, "recorded": True}


@router.get("/history/summary")
async def history_summary(
    days: int = Query(365, ge=1, le=365),
    service: MarketIntelligenceService = Depends(get_intelligence_service),
):
    return service.historical_summary(days)
