"""Configuration model for a GPU device plugin and feature discovery daemon."""

__version__ = "0.16.0"

__all__ = ["config", "duration", "flags", "replicas", "resources", "sharing", "strategy"]