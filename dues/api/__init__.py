"""HTTP API for the dues engine."""
