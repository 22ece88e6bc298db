"""HTTP API for the Simple Linkz dashboard."""
