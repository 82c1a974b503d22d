"""
FastAPI Main Application with Adaptive Scheduler
Market intelligence worker: assessment API + self-rescheduling loop
"""

import logging
from contextlib import asynccontextmanager
from datetime import time
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from market_intel.api.routes import health, intelligence
from market_intel.config import settings
from market_intel.core.logging import setup_logging
from market_intel.domain.services.ai_insight_engine import AIInsightEngine
from market_intel.domain.services.market_context_engine import MarketContextEngine
from market_intel.domain.services.market_intelligence_service import MarketIntelligenceService
from market_intel.infrastructure.cache.intelligence_cache import IntelligenceCache
from market_intel.infrastructure.db import database
from market_intel.infrastructure.db.repositories.snapshot_repository import SqlSnapshotSink
from market_intel.infrastructure.history.pattern_store import HistoricalPatternStore
from market_intel.infrastructure.market_data.foreign_markets import ForeignMarketClient
from market_intel.infrastructure.market_data.yfinance_provider import YFinanceQuoteSource
from market_intel.infrastructure.news.rss_client import HeadlineClient
from market_intel.scheduler.adaptive_scheduler import AdaptiveScheduler

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Global instances
intelligence_service: Optional[MarketIntelligenceService] = None
adaptive_scheduler: Optional[AdaptiveScheduler] = None


def build_context_engine() -> MarketContextEngine:
    return MarketContextEngine(
        market_open=time(settings.MARKET_OPEN_HOUR, settings.MARKET_OPEN_MINUTE),
        market_close=time(settings.MARKET_CLOSE_HOUR, settings.MARKET_CLOSE_MINUTE),
        policy_meeting_months=settings.policy_meeting_months,
    )


def build_intelligence_service(snapshot_sink=None) -> MarketIntelligenceService:
    return MarketIntelligenceService(
        quote_source=YFinanceQuoteSource(cache_ttl_seconds=settings.QUOTE_CACHE_TTL_SECONDS),
        foreign_client=ForeignMarketClient(settings.foreign_index_symbols),
        headline_client=HeadlineClient(
            settings.news_feeds,
            per_source=settings.NEWS_ITEMS_PER_SOURCE,
            max_items=settings.NEWS_MAX_ITEMS,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        ),
        context_engine=build_context_engine(),
        pattern_store=HistoricalPatternStore(max_days=settings.HISTORY_MAX_DAYS),
        cache=IntelligenceCache(ttl_minutes=settings.INTELLIGENCE_CACHE_TTL_MINUTES),
        snapshot_sink=snapshot_sink,
        insight_engine=AIInsightEngine(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.LLM_TIMEOUT_SECONDS,
        ),
        default_vix=settings.DEFAULT_VIX,
        default_nifty_spot=settings.DEFAULT_NIFTY_SPOT,
        default_banknifty_spot=settings.DEFAULT_BANKNIFTY_SPOT,
        history_days=settings.HISTORY_MAX_DAYS,
    )


def build_adaptive_scheduler(service: MarketIntelligenceService) -> AdaptiveScheduler:
    scheduler: Optional[AdaptiveScheduler] = None

    async def run_assessment():
        result = await service.analyze()
        if result.error:
            logger.warning(f"⚠️ Market intelligence unavailable: {result.error}")
            return
        logger.info(
            f"📈 Assessment: trend={result.conditions.trend.value}, "
            f"vix={result.conditions.vix:.2f}, events={len(result.events)}, "
            f"recommendations={len(result.recommendations)}"
        )

    async def get_market_conditions():
        result = await service.analyze()
        return result.conditions

    def get_active_positions() -> int:
        # Position tracking lives outside this service; counts arrive via update_active_positions
        return scheduler.state.active_positions_count if scheduler else 0

    scheduler = AdaptiveScheduler(
        assessment_callback=run_assessment,
        get_market_conditions=get_market_conditions,
        get_active_positions=get_active_positions,
        context_engine=service.context_engine,
        timezone=settings.TIMEZONE,
    )
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    global intelligence_service, adaptive_scheduler

    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting Market Intelligence Worker")
    logger.info(f"   Environment: {settings.APP_ENV}")
    logger.info("=" * 60)

    snapshot_sink = None
    if settings.DB_PERSISTENCE_ENABLED:
        logger.info("📊 Initializing database...")
        await database.init_db()
        snapshot_sink = SqlSnapshotSink(database.async_session_factory, max_days=settings.HISTORY_MAX_DAYS)
        logger.info("✅ Database initialized")
    else:
        logger.info("📊 Snapshot persistence disabled (in-memory history only)")

    intelligence_service = build_intelligence_service(snapshot_sink)
    app.state.intelligence_service = intelligence_service
    if snapshot_sink is not None:
        try:
            await intelligence_service.restore_history()
        except Exception as e:
            logger.error(f"❌ Failed to restore historical snapshots: {e}")
    logger.info(
        f"🧠 AI insights: {'Gemini' if intelligence_service.insight_engine.llm_enabled else 'rule-based'}"
    )

    app.state.adaptive_scheduler = None
    if settings.SCHEDULER_ENABLED:
        try:
            adaptive_scheduler = build_adaptive_scheduler(intelligence_service)
            adaptive_scheduler.start()
            app.state.adaptive_scheduler = adaptive_scheduler
            logger.info("✅ Adaptive scheduler started")
        except Exception as e:
            logger.error(f"❌ Failed to start adaptive scheduler: {e}")
    else:
        logger.info("⏰ Scheduler disabled")

    logger.info(f"   ✅ API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info(f"   ✅ API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down Market Intelligence Worker...")

    if adaptive_scheduler:
        adaptive_scheduler.stop()
        adaptive_scheduler = None
        logger.info("✅ Scheduler stopped")

    if settings.DB_PERSISTENCE_ENABLED:
        await database.close_db()
        logger.info("✅ Database connections closed")

    logger.info("👋 Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Nifty Options Market Intelligence",
    description="Market context, trend and option strategy scoring with adaptive assessment cadence",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(intelligence.router, prefix="/api/v1/intelligence", tags=["Market Intelligence"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "📊 Nifty Options Market Intelligence",
        "version": "1.0.0",
        "docs": "/docs",
    }
