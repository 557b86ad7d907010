#!/usr/bin/env python3
"""
SMA Signal Analyzer - Command Line Runner

Reads a ``timestamp,price`` CSV file, computes SMA(20)/SMA(50) based
signals on the latest sample and prints one trading suggestion with its
reason. Research use only; nothing is executed or persisted.

EXECUTION
    python run_analysis.py --input prices.csv
    python run_analysis.py --input ticks.csv --resample-hours 1
    python run_analysis.py --input prices.csv --format json --context
    python run_analysis.py --input prices.csv --config params.json

EXIT CODES
    0   Success
    1   Unexpected failure
    2   Invalid configuration or arguments
    3   Input file not found
    4   CSV parse error
    5   Malformed timestamp
    6   Non-numeric price
    7   Insufficient data

Version: 1.0.0
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from sma_analyzer.config import AnalyzerConfig, load_config
from sma_analyzer.data_collector import DataCollector
from sma_analyzer.exceptions import AnalyzerError
from sma_analyzer.regime_detector import RegimeDetector
from sma_analyzer.report_generator import format_json_report, format_text_report
from sma_analyzer.signal_engine import SignalEngine


# =============================================================================
# CONSTANTS
# =============================================================================

VERSION: str = "1.0.0"
LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger("sma_analyzer.run")


# =============================================================================
# COMMAND LINE INTERFACE
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"SMA Signal Analyzer v{VERSION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run_analysis.py --input prices.csv
    python run_analysis.py --input ticks.csv --resample-hours 4
    python run_analysis.py --input prices.csv --format json --context
        """
    )
    parser.add_argument("--input", "-i", required=True,
                        help="Path to the CSV file (timestamp,price)")
    parser.add_argument("--resample-hours", type=int, default=0,
                        help="Bucket rows into N-hour closing candles (default: 0, off)")
    parser.add_argument("--config", "-c", default=None,
                        help="JSON file with parameter overrides")
    parser.add_argument("--format", "-f", default="text", choices=["text", "json"],
                        help="Report format (default: text)")
    parser.add_argument("--context", action="store_true",
                        help="Append market regime and ATR%% context")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging verbosity on stderr (default: WARNING)")
    return parser


def run(args: argparse.Namespace) -> str:
    """
    Execute one analysis and return the rendered report.

    Raises
    ------
    AnalyzerError
        Any input, data or configuration failure
    """
    config = load_config(args.config) if args.config else AnalyzerConfig()

    collector = DataCollector(resample_hours=args.resample_hours)
    window = collector.collect(args.input)

    engine = SignalEngine(config.signal)
    result = engine.analyze(window)

    context = None
    if args.context:
        context = RegimeDetector(config.regime).detect(window)

    if args.format == "json":
        return format_json_report(result, context, config.output)
    return format_text_report(result, context, config.output)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for command-line execution.

    Returns
    -------
    int
        Exit code (0 for success, see module docstring for failures)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.resample_hours < 0:
        parser.error("--resample-hours must be >= 0")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    try:
        report = run(args)
    except AnalyzerError as e:
        logger.debug(f"{type(e).__name__} (exit code {e.exit_code})")
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except Exception as e:
        logger.error(f"Analysis failed: {e}")
        import traceback
        traceback.print_exc()
        return 1

    print(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
