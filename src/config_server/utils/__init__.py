"""Shared helpers for Config Server."""
