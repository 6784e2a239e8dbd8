"""
Order persistence.

Responsibilities:
- Build order records from caller payloads and the recommended provider.
- Store one JSON file per order, named by order id.
- List orders newest first and rewrite a record when its status changes.
"""
