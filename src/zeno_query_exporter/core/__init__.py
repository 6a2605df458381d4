"""Query-result-to-metrics translation engine."""
