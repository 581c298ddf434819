"""
Sports data sync service.

Key components:
- Adapters: Normalize payloads from TheSportsDB, API-Football and API-Sports
- Store: Upsert contract consumed by the orchestrator
- Orchestrator: Coordinate sync runs, quota and the audit log
"""
