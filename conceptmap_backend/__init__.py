"""Concept Map Backend - editing session manager and REST API."""

from .map_manager import MapManager, describe_connection

__all__ = ["MapManager", "describe_connection"]
