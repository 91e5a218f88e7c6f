# Middleware package init
"""
DateMeDoc Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (execution order):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    Responses travel back through the same chain in reverse, so the request
    ID header is set and the access log sees the final status code.
"""
