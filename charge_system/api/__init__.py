"""HTTP API for the charge system."""
