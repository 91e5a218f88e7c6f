"""
DateMeDoc Backend — Dating Form Schemas
=========================================
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from datemedoc.models.form import FORM_STATUSES

FormStatus = Literal[FORM_STATUSES]


class FormCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    fields: List[Dict[str, Any]] = Field(default_factory=list)
    status: FormStatus = "draft"


class FormUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    fields: Optional[List[Dict[str, Any]]] = None
    status: Optional[FormStatus] = None

    model_config = {"extra": "forbid"}


class FormResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: Optional[str] = None
    fields: List[Dict[str, Any]] = Field(default_factory=list)
    status: str
    applications_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FormEnvelope(BaseModel):
    success: bool = True
    form: FormResponse


class FormListResponse(BaseModel):
    success: bool = True
    forms: List[FormResponse]
