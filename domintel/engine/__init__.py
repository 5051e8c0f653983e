"""Propagation engine: resolver client, fan-out, analysis, aggregation and report runtime."""
