"""Config Server: git-backed externalized configuration."""

__version__ = "0.1.0"
