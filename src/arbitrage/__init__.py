from .scanner import ArbitrageScanner, QuoteComparisonError, spread_bps

__all__ = ["ArbitrageScanner", "QuoteComparisonError", "spread_bps"]
