"""Rule-based + optional LLM (Gemini) market insights (non-trade-generating)."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

import httpx

from market_intel.domain.models import (
    MarketConditions,
    MarketEvent,
    MarketIntelligenceResult,
    StrategyRecommendation,
    Trend,
    TrendStrength,
    VixInterpretation,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_STRATEGY = "Short Strangle"
MAX_TEXT_INSIGHTS = 3

RISK_BASE_SCORES = {
    "low": 20,
    "medium-low": 40,
    "medium": 60,
    "medium-high": 75,
    "high": 90,
}

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")
_LIST_PREFIX = re.compile(r"^[\d\-•\.\)\s]+")
_NUMBERED = re.compile(r"^\d+[\.\)]")


def calculate_ai_confidence(conditions: MarketConditions) -> int:
    """Confidence (0-100) in how clear the current signals are."""
    score = 50
    indicators = conditions.technical_indicators

    if conditions.vix >= 20 or conditions.vix < 15:
        score += 15
    if conditions.trend_strength == TrendStrength.STRONG:
        score += 15
    elif conditions.trend_strength == TrendStrength.MODERATE:
        score += 10
    if indicators.momentum_strength > 1.0:
        score += 10
    if indicators.price_position < 20 or indicators.price_position > 80:
        score += 10

    return min(100, score)


def calculate_risk_score(risk_level: str, factor_count: int) -> int:
    return min(100, RISK_BASE_SCORES.get(risk_level, 50) + factor_count * 5)


def extract_insights_from_text(text: str) -> List[str]:
    """Pick list-like or advisory lines out of a free-text answer."""
    insights: List[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        lowered = line.lower()
        if (
            "insight" in lowered
            or "recommend" in lowered
            or "suggest" in lowered
            or _NUMBERED.match(line)
            or line.startswith("-")
            or line.startswith("•")
        ):
            insights.append(_LIST_PREFIX.sub("", line))
    return insights[:MAX_TEXT_INSIGHTS]


def analyze_historical_patterns(conditions: MarketConditions) -> Dict[str, Any]:
    """Pattern flags on today's conditions and a simple match score."""
    patterns = {
        "vix_spike": 20 < conditions.vix < 30,
        "low_volatility": conditions.vix < 12,
        "strong_trend": conditions.trend_strength == TrendStrength.STRONG,
        "range_bound": (
            conditions.trend == Trend.SIDEWAYS
            and conditions.technical_indicators.volatility < 1.5
        ),
    }

    insights: List[str] = []
    if patterns["vix_spike"]:
        insights.append("VIX spike pattern detected - historically favorable for premium collection")
    if patterns["low_volatility"]:
        insights.append("Low volatility pattern - potential for breakout strategies")
    if patterns["strong_trend"]:
        insights.append("Strong trend pattern - directional strategies historically perform well")
    if patterns["range_bound"]:
        insights.append("Range-bound pattern - premium collection strategies historically profitable")

    weights = {"vix_spike": 25, "low_volatility": 20, "strong_trend": 25, "range_bound": 30}
    return {
        "patterns": patterns,
        "insights": insights,
        "historical_match": sum(weights[name] for name, hit in patterns.items() if hit),
    }


class AIInsightEngine:
    """
    Adds narrative insights to an intelligence result.

    Uses Gemini when an API key is configured and falls back to the
    rule-based path on any transport, format or parse failure.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def llm_enabled(self) -> bool:
        return bool(self.api_key)

    async def enhance(self, result: MarketIntelligenceResult) -> Optional[Dict[str, Any]]:
        if result.conditions is None or result.error:
            return None

        rules = self.rule_based_insights(
            result.conditions,
            result.recommendations,
            result.events,
            result.vix_interpretation,
        )
        if not self.llm_enabled:
            return rules

        text = await self._call_gemini(self.build_prompt(result))
        if text is None:
            return rules
        return self.parse_llm_response(text, result.conditions, result.recommendations, rules)

    # ------------------------------------------------------------------
    # RULE-BASED
    # ------------------------------------------------------------------

    def rule_based_insights(
        self,
        conditions: MarketConditions,
        recommendations: Sequence[StrategyRecommendation] = (),
        events: Sequence[MarketEvent] = (),
        vix_interpretation: Optional[VixInterpretation] = None,
    ) -> Dict[str, Any]:
        insights: List[str] = []
        risk_factors: List[str] = []
        risk_level = "low"
        confidence = 50
        vix = conditions.vix
        indicators = conditions.technical_indicators

        if vix >= 25:
            insights.append("Extremely high VIX indicates market fear - excellent premium collection opportunity")
            risk_factors.append("High volatility may lead to large price swings")
            risk_level = "high"
            confidence += 15
        elif vix >= 20:
            insights.append("Elevated VIX provides attractive premium income for selling strategies")
            risk_level = "medium-high"
            confidence += 10
        elif vix < 10:
            insights.append("Very low VIX suggests complacency - potential for sudden volatility spike")
            risk_factors.append("Low volatility may compress quickly")
            risk_level = "medium"
            confidence += 5

        if conditions.trend == Trend.BULLISH and conditions.trend_strength == TrendStrength.STRONG:
            insights.append("Strong bullish momentum supports directional strategies")
            confidence += 10
        elif conditions.trend == Trend.BEARISH and conditions.trend_strength == TrendStrength.STRONG:
            insights.append("Strong bearish momentum - consider defensive strategies")
            if risk_level == "low":
                risk_level = "medium"
            risk_factors.append("Bearish trend may continue")
        elif conditions.trend == Trend.SIDEWAYS:
            insights.append("Range-bound market ideal for premium collection strategies")
            confidence += 5

        if indicators.is_near_support:
            insights.append("Price near support level - potential bounce opportunity")
            confidence += 5
        if indicators.is_near_resistance:
            insights.append("Price near resistance - potential reversal point")

        if abs(indicators.momentum) > 1.0:
            direction = "upward" if indicators.momentum > 0 else "downward"
            insights.append(f"Strong momentum ({direction}) - directional strategies favored")
            confidence += 5

        if indicators.volume_indicator == "low":
            risk_factors.append("Low volume may indicate lack of conviction")
            if risk_level == "low":
                risk_level = "medium"

        confidence = min(100, max(0, confidence))

        if vix >= 20 and conditions.trend == Trend.SIDEWAYS:
            outlook = "High volatility, range-bound market - premium collection strategies optimal"
        elif vix < 15 and conditions.trend == Trend.BULLISH:
            outlook = "Low volatility with bullish bias - directional buying strategies favored"
        elif vix >= 25:
            outlook = "Extreme volatility - high-risk, high-reward premium collection environment"
        else:
            outlook = "Neutral market conditions"

        high_impact = [e for e in events if e.days_until <= 7 and e.is_high_impact]
        if high_impact:
            event = high_impact[0]
            outlook += f" | Event risk: {event.name} in {event.days_until} days - expect increased volatility"
            event_risk = (
                f"{len(high_impact)} high-impact event(s) upcoming - reduce position size, use wider strikes"
            )
        else:
            event_risk = "No major events in next 7 days"

        if vix_interpretation is not None:
            vix_analysis = f"{vix_interpretation.meaning}. {vix_interpretation.context}"
        elif vix >= 20:
            vix_analysis = "High VIX indicates market fear/uncertainty - premium collection attractive but risky"
        elif vix < 15:
            vix_analysis = "Low VIX suggests market stability or complacency - good for directional strategies"
        else:
            vix_analysis = "VIX at normal levels"

        return {
            "source": "rules",
            "insights": insights,
            "confidence_score": confidence,
            "risk_assessment": {
                "level": risk_level,
                "factors": risk_factors,
                "score": calculate_risk_score(risk_level, len(risk_factors)),
            },
            "market_outlook": outlook,
            "vix_analysis": vix_analysis,
            "event_risk": event_risk,
            "top_strategy": recommendations[0].strategy if recommendations else DEFAULT_TOP_STRATEGY,
            "reasoning": f"Rule-based analysis: {'; '.join(insights)}",
            "historical_patterns": analyze_historical_patterns(conditions),
        }

    # ------------------------------------------------------------------
    # GEMINI
    # ------------------------------------------------------------------

    def build_prompt(self, result: MarketIntelligenceResult) -> str:
        c = result.conditions
        ti = c.technical_indicators
        lines = [
            "You are an expert algorithmic trading advisor specializing in Indian options markets "
            "(NIFTY, BANKNIFTY). Provide concise, actionable insights based on market data.",
            "",
            "Current Market Data:",
            f"- VIX: {c.vix:.2f} ({c.volatility_level.value} volatility)",
            f"- NIFTY: {c.nifty_spot:.2f} ({c.nifty_change_percent:+.2f}%)",
            f"- Trend: {c.trend.value} ({c.trend_strength.value} strength)",
            f"- Price Position: {ti.price_position:.1f}% of daily range",
            f"- Momentum: {ti.momentum:.2f}%",
        ]

        vi = result.vix_interpretation
        if vi is not None:
            lines += [
                "VIX Analysis:",
                f"- Level: {vi.level.value}, Trend: {vi.trend.value} (change: {vi.change:+.2f})",
                f"- Meaning: {vi.meaning}",
                f"- Context: {vi.context}",
            ]

        gap = result.gap_analysis
        if gap is not None:
            lines.append(f"Gap: {gap.type.value} ({gap.gap_percent:+.2f}%, {gap.magnitude.value}) - {gap.interpretation}")

        if result.foreign_markets:
            lines.append("US Market Data:")
            lines += [
                f"- {q.name}: {q.price:.2f} ({q.change_percent:+.2f}%)"
                for q in result.foreign_markets.values()
            ]
        if result.cross_market_prediction is not None:
            lines.append(f"Predicted Indian reaction: {result.cross_market_prediction.overall_sentiment.value}")

        if result.news:
            lines.append("Recent Market News:")
            lines += [f"{i}. {n.title} ({n.source})" for i, n in enumerate(result.news[:5], start=1)]

        if result.events:
            lines.append("Upcoming Market Events:")
            lines += [
                f"- {e.name}: {e.days_until} days ({e.impact.value} impact) - {e.description}"
                for e in result.events
            ]
        else:
            lines.append("No major events in next 7 days")

        history = result.historical_summary or {}
        if history.get("available"):
            momentum = history.get("momentum") or {}
            lines.append(
                f"Historical ({history.get('total_days')} days, {history.get('period')}): "
                f"avg change {momentum.get('avg_daily_change', 'N/A')}%, "
                f"dominant trend {momentum.get('trend_distribution', {}).get('dominant', 'N/A')}"
            )

        lines.append("Current Recommendations:")
        lines += [
            f"{r.priority}. {r.strategy} ({r.confidence.value} confidence, score: {r.score})"
            for r in result.recommendations
        ]
        lines += [
            "",
            "Respond as JSON with keys: marketOutlook, riskAssessment (low/medium/medium-high/high with reasons), "
            "topStrategy, insights (list), vixAnalysis, eventRisk.",
        ]
        return "\n".join(lines)

    async def _call_gemini(self, prompt: str) -> Optional[str]:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.3,
                "maxOutputTokens": 500,
                "responseMimeType": "application/json",
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, params={"key": self.api_key}, json=body)
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Gemini request failed, using rule-based insights: {e}")
            return None

        if resp.status_code != 200:
            logger.warning(f"⚠️ Gemini returned HTTP {resp.status_code}, using rule-based insights")
            return None

        try:
            data = resp.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("⚠️ Gemini response format unexpected, using rule-based insights")
            return None

    def parse_llm_response(
        self,
        text: str,
        conditions: MarketConditions,
        recommendations: Sequence[StrategyRecommendation],
        fallback: Dict[str, Any],
    ) -> Dict[str, Any]:
        confidence = calculate_ai_confidence(conditions)
        match = _JSON_BLOCK.search(text)
        parsed: Optional[Dict[str, Any]] = None
        if match:
            try:
                candidate = json.loads(match.group(0))
                if isinstance(candidate, dict):
                    parsed = candidate
            except ValueError:
                logger.warning("⚠️ Could not parse Gemini JSON, mining free text instead")

        if parsed is None:
            return {
                **fallback,
                "source": "gemini_text",
                "insights": extract_insights_from_text(text) or fallback["insights"],
                "confidence_score": confidence,
                "reasoning": text,
            }

        risk_text = str(parsed.get("riskAssessment") or "medium")
        risk_level = next(
            (level for level in ("medium-high", "medium-low", "high", "medium", "low")
             if risk_text.lower().startswith(level)),
            "medium",
        )
        insights = parsed.get("insights")
        return {
            **fallback,
            "source": "gemini",
            "insights": [str(i) for i in insights] if isinstance(insights, list) else fallback["insights"],
            "confidence_score": confidence,
            "risk_assessment": {
                "level": risk_level,
                "factors": [risk_text],
                "score": calculate_risk_score(risk_level, 1),
            },
            "market_outlook": parsed.get("marketOutlook") or "Neutral market conditions",
            "vix_analysis": parsed.get("vixAnalysis") or fallback["vix_analysis"],
            "event_risk": parsed.get("eventRisk") or fallback["event_risk"],
            "top_strategy": parsed.get("topStrategy") or (
                recommendations[0].strategy if recommendations else DEFAULT_TOP_STRATEGY
            ),
            "reasoning": text,
        }
