# Models package init
"""
DateMeDoc Backend — ORM Models
================================

Importing this package registers every table with Base.metadata, which
Alembic and the foreign keys between tables rely on.
"""

from datemedoc.models.profile import UserProfile
from datemedoc.models.date_me_doc import DateMeDoc
from datemedoc.models.application import Application, APPLICATION_STATUSES
from datemedoc.models.analysis import (
    AnalysisJob,
    ContentAnalysis,
    MatchmakingScore,
    JOB_STATUSES,
)
from datemedoc.models.form import (
    DatingForm,
    FormApplication,
    FORM_STATUSES,
    FORM_APPLICATION_STATUSES,
)

__all__ = [
    "UserProfile",
    "DateMeDoc",
    "Application",
    "APPLICATION_STATUSES",
    "AnalysisJob",
    "ContentAnalysis",
    "MatchmakingScore",
    "JOB_STATUSES",
    "DatingForm",
    "FormApplication",
    "FORM_STATUSES",
    "FORM_APPLICATION_STATUSES",
]
