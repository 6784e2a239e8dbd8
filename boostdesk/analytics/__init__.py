"""
Order activity tracking.

Responsibilities:
- Record order events (created, status updated, degraded reads) in memory.
- Summarise the event log and the current order set for the admin view.
"""
