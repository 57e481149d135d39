"""Shared infrastructure: structured logging and configuration."""
