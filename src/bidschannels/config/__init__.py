"""Persistent library settings."""
