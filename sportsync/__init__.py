"""
sportsync - multi-provider sports data ingestion.

Fetches leagues, teams, events and odds from unreliable third-party APIs
through a resilient client, reconciles records across sources and keeps a
canonical store synchronized on scheduled cadences.
"""
__version__ = "1.0.0"
