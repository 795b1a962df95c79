"""
Suggestion classifier: turns three trader grades into BUY / SELL / HOLD with a
confidence score, filtered by which markets the catalog lists for the asset.
"""

from __future__ import annotations
import logging
import math
from typing import List, Optional, Tuple

from signal_trader.core.types import Suggestion, SuggestionGrades, TraderGrade, TradingAction
from signal_trader.feeds.base import GradeSource
from signal_trader.market.catalog import MarketCatalog

logger = logging.getLogger("signal_trader.suggestions")

BUY_THRESHOLD = 59.0
SELL_THRESHOLD = 41.0
MAX_CONFIDENCE = 0.99


def _round_half_up(x: float, places: int = 2) -> float:
    factor = 10 ** places
    return math.floor(x * factor + 0.5) / factor


def classify_grades(ta_grade: float, quant_grade: float, tm_grade: float) -> Tuple[TradingAction, float]:
    """
    avg >= 59: BUY, scaled by distance above 59 over the remaining 41 points.
    avg <= 41: SELL, scaled by distance below 41.
    Otherwise HOLD, highest at the midpoint 50 and zero at either threshold.
    Confidence is clamped to [0, 0.99] and rounded to 2 places.
    """
    avg = (ta_grade + quant_grade + tm_grade) / 3.0
    if avg >= BUY_THRESHOLD:
        action = TradingAction.BUY
        confidence = (avg - BUY_THRESHOLD) / (100.0 - BUY_THRESHOLD)
    elif avg <= SELL_THRESHOLD:
        action = TradingAction.SELL
        confidence = (SELL_THRESHOLD - avg) / SELL_THRESHOLD
    else:
        action = TradingAction.HOLD
        mid = (BUY_THRESHOLD + SELL_THRESHOLD) / 2.0
        half_range = (BUY_THRESHOLD - SELL_THRESHOLD) / 2.0
        confidence = 1.0 - abs(avg - mid) / half_range
    confidence = min(max(confidence, 0.0), MAX_CONFIDENCE)
    return action, _round_half_up(confidence)


class SuggestionGenerator:
    """Builds one suggestion per eligible asset from the grade feed and the market catalog."""

    def __init__(self, grade_source: GradeSource, catalog: MarketCatalog, target_assets: List[str]):
        self._grades = grade_source
        self._catalog = catalog
        self.target_assets = [a.upper() for a in target_assets]

    def generate_suggestions(self) -> List[Suggestion]:
        grades = self._grades.get_grades(self.target_assets)
        spot_markets = self._catalog.spot_markets()
        derivatives_markets = self._catalog.derivatives_markets()
        suggestions: List[Suggestion] = []
        skipped: List[str] = []
        seen_spot: set[str] = set()

        for grade in grades:
            asset = grade.asset.upper()
            suggestion = self._suggest(grade, spot_markets, derivatives_markets, seen_spot)
            if suggestion is None:
                skipped.append(asset)
                continue
            if suggestion.spot_market:
                seen_spot.add(suggestion.spot_market)
            suggestions.append(suggestion)

        if skipped:
            logger.info("Skipped suggestions for %d assets: %s", len(skipped), ", ".join(skipped))
        logger.info("Generated %d suggestions from %d grades", len(suggestions), len(grades))
        return suggestions

    def _suggest(self, grade: TraderGrade, spot_markets: dict, derivatives_markets: dict,
                 seen_spot: set) -> Optional[Suggestion]:
        asset = grade.asset.upper()
        if "binance-peg" in grade.name.lower():
            return None
        if None in (grade.ta_grade, grade.quant_grade, grade.tm_grade):
            logger.warning("Incomplete grades for %s, skipping", asset)
            return None

        symbol = self._catalog.market_symbol(asset)
        spot_info = spot_markets.get(symbol)
        derivatives_info = derivatives_markets.get(symbol)
        if spot_info is None and derivatives_info is None:
            return None

        action, confidence = classify_grades(grade.ta_grade, grade.quant_grade, grade.tm_grade)
        if action == TradingAction.SELL and derivatives_info is None:
            logger.info("SELL for %s skipped: no derivatives market to short on", asset)
            return None
        # only spot symbols are checked for collisions
        if symbol in seen_spot:
            return None

        return Suggestion(
            asset_id=asset,
            name=grade.name,
            spot_market=symbol if spot_info else None,
            derivatives_market=symbol if derivatives_info else None,
            spot_market_info=spot_info,
            derivatives_market_info=derivatives_info,
            action=action,
            confidence=confidence,
            grades=SuggestionGrades(
                ta_grade=float(grade.ta_grade),
                quant_grade=float(grade.quant_grade),
                tm_grade=float(grade.tm_grade),
            ),
        )
