"""
Report Generator for the SMA Signal Analyzer

Renders an AnalysisResult in two formats:
    - Text: fixed-field console report, one ``label: value`` per line
    - JSON: machine-readable object with the same fields

Prices and averages are shown to four decimal places. The optional market
context is appended after the suggestion in both formats.

Version: 1.0.0
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from .config import OUTPUT, OutputConfig
from .regime_detector import MarketContext
from .signal_engine import ENGINE_VERSION, AnalysisResult

logger = logging.getLogger(__name__)


# =============================================================================
# TEXT REPORT
# =============================================================================

def _line(label: str, value: Any, output: OutputConfig) -> str:
    return f"{label + ':':<{output.label_width}}{value}"


def _pct(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value * 100:.2f}%"


def format_text_report(
    result: AnalysisResult,
    context: Optional[MarketContext] = None,
    output: OutputConfig = OUTPUT
) -> str:
    """
    Fixed-field report, in order: last timestamp, last price, SMA(20),
    SMA(50), previous SMA(20), previous SMA(50), suggestion, reason.
    """
    dp = output.decimal_places
    lines: List[str] = [
        _line("Last timestamp", result.last_timestamp, output),
        _line("Last price", f"{result.last_price:.{dp}f}", output),
        _line("SMA(20)", f"{result.sma20:.{dp}f}", output),
        _line("SMA(50)", f"{result.sma50:.{dp}f}", output),
        _line("Prev SMA(20)", f"{result.prev_sma20:.{dp}f}", output),
        _line("Prev SMA(50)", f"{result.prev_sma50:.{dp}f}", output),
        _line("Suggestion", result.suggestion.value, output),
        _line("Reason", result.reason, output),
    ]

    if context is not None:
        lines.append("")
        lines.append("Market context")
        lines.append(_line("  Regime", context.regime.value, output))
        if not context.sufficient_history:
            lines.append(_line("  History", "insufficient for regime detection", output))
        else:
            lines.append(_line("  Trend (slope window)", f"{context.trend_pct * 100:+.2f}%", output))
            lines.append(_line("  Range (slope window)", _pct(context.range_pct), output))
            lines.append(_line("  Slope fit R2", f"{context.slope_r2:.3f}", output))
        lines.append(_line("  ATR%", _pct(context.atr_pct), output))

    return "\n".join(lines)


def print_analysis(
    result: AnalysisResult,
    context: Optional[MarketContext] = None,
    output: OutputConfig = OUTPUT
) -> None:
    """Print the text report to stdout."""
    print(format_text_report(result, context, output))


# =============================================================================
# JSON REPORT
# =============================================================================

def _round(value: Optional[float], places: int) -> Optional[float]:
    return None if value is None else round(value, places)


def build_json_payload(
    result: AnalysisResult,
    context: Optional[MarketContext] = None,
    output: OutputConfig = OUTPUT
) -> Dict[str, Any]:
    """Structured report for programmatic consumption."""
    dp = output.decimal_places
    payload = result.to_dict()
    for key in ('last_price', 'sma20', 'sma50', 'prev_sma20', 'prev_sma50'):
        payload[key] = _round(payload[key], dp)
    payload['engine_version'] = ENGINE_VERSION
    logger.debug(f"Building JSON report for rule '{result.rule_name}'")

    if context is not None:
        ctx = context.to_dict()
        for key in ('trend_pct', 'range_pct', 'slope_r2', 'atr_pct'):
            ctx[key] = _round(ctx[key], 6)
        ctx['long_sma'] = _round(ctx['long_sma'], dp)
        payload['market_context'] = ctx

    return payload


def format_json_report(
    result: AnalysisResult,
    context: Optional[MarketContext] = None,
    output: OutputConfig = OUTPUT
) -> str:
    return json.dumps(build_json_payload(result, context, output), indent=2)
