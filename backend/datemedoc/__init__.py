"""
DateMeDoc Backend — Application Package
=========================================

What:  REST backend for date-me-docs, applications, dating forms and
       AI-assisted compatibility scoring.
How:   Layered architecture:

    routes/     HTTP handlers (thin; parse input, call a service, shape output)
    services/   Business rules, scoring, content extraction, Gemini client
    models/     SQLAlchemy ORM models (one module per table family)
    schemas/    Pydantic request/response contracts
    middleware/ Request ID, access logging, rate limiting

Entry points:
    uvicorn datemedoc.main:app     HTTP API
    python -m datemedoc.worker     Background analysis job worker
"""

__version__ = "1.0.0"
