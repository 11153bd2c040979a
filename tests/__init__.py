"""Test suite for Config Server."""
