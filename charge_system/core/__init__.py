"""Core charge processing logic."""
