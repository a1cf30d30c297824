"""
Heat-pump snapshot logger package.

Polls a heat-pump controller over its XML websocket protocol, filters and
flattens the reported categories, and stores periodic snapshots in SQLite.

CHANGELOG:
- 2026-10-10: Initial creation (STORY-001)

TODO:
- None
"""
