# Routes package init
"""
DateMeDoc Backend — API Routes Package
=========================================

Route Inventory:
    - health.py:        GET /health, GET /
    - auth.py:          /api/auth       (me, logout, login stub)
    - docs.py:          /api/docs       (date-me-doc CRUD, owner review)
    - applications.py:  /api/applications (submit, status, inbox, AI select)
    - users.py:         /api/users      (profile, onboarding, AI, matches)
    - forms.py:         /api/forms      (dating form CRUD)

Routes stay thin: parse the request, call one service method, wrap the
result in a response model. Status codes for failures come from the
exception handlers in main.py.
"""
