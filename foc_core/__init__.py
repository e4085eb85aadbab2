"""Core (UI-agnostic) FOC inventory logic.

This package contains:
- spreadsheet access and header resolution
- the request-date join and inventory materialization (+ cache)
- view compute functions (JSON-serializable payloads)
- PIN auth gate, rate limiter and the request/return handlers
"""
