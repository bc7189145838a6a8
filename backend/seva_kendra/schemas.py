"""Pydantic request/response schemas used by the API.

Request fields are optional on purpose: presence of required values is
checked by the services so that a missing field produces the same
`ValidationError` message whether it was absent, null or blank.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class RegisterIn(BaseModel):
    """Payload for user registration."""
    name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    phone: Optional[str] = None
    password: Optional[str] = None


class ApplicationIn(BaseModel):
    """Request format for submitting an application."""
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    aadhaar_number: Optional[str] = None
    address: Optional[str] = None
    additional_info: Optional[str] = None


class StatusUpdateIn(BaseModel):
    """Request body for a status transition."""
    status: Optional[str] = None
    remarks: Optional[str] = None
    updated_by: Optional[str] = None


class UserOut(BaseModel):
    """Public view of a user; the password hash is never part of it."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone: str
    role: str
    is_active: bool
    created_at: datetime


class ServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    fee: float
    is_active: bool


class ApplicationOut(BaseModel):
    """An application row, optionally augmented with its service fee."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_name: str
    user_phone: str
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    aadhaar_number: Optional[str] = None
    address: Optional[str] = None
    additional_info: Optional[str] = None
    registration_no: str
    status: str
    created_at: datetime
    updated_at: datetime
    fee: Optional[float] = None


class HistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: int
    status: str
    remarks: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime
