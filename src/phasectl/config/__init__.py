"""Configuration — TOML discovery, settings, catalog loading, logging."""
