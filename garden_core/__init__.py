# =============================================================================
# garden_core/__init__.py
# Garden Core - Local-First Data Access Layer
# =============================================================================
"""
garden_core keeps a personal wellness planner usable offline.

Every entity type goes through one cache-aside repository. Reads prefer the
remote store and fall back to a durable local cache. Writes go to the remote
store and then patch the cache. Habits are propagated week to week,
priorities are ranked per week and reminders are expanded into scheduled
triggers.
"""

__version__ = "1.0.0"
