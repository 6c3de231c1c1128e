"""Logging and TLS helpers for rawhttp."""
