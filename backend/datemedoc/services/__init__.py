# Services package init
"""
DateMeDoc Backend — Services Layer
=====================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services take an AsyncSession plus plain arguments or schemas, apply
       the rules, and return ORM rows or response models. They raise the
       exceptions in datemedoc.exceptions; routes never build status codes.

Service Inventory:
    - scoring:            pure heuristic match scores (no I/O)
    - LLMService:         abstract interface for AI analysis providers
    - GeminiService:      Google Gemini implementation with retry + breaker
    - ContentExtractor:   website and Twitter/X text extraction
    - MatchingService:    text score + optional AI URL score
    - ProfileService:     profiles, onboarding, footprint analysis, discovery
    - DateMeDocService:   doc CRUD and the owner's application review
    - ApplicationService: submissions, status lookup, job enqueue
    - FormService:        dating forms and their application inbox
    - AnalysisWorker:     background job processing
"""
