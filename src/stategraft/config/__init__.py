"""Configuration — TOML discovery, pydantic models, settings, logging."""
