"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Table names are part of the external schema shared with other clients
of the same database, so every class pins its `__tablename__`.
"""

from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from typing import List


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered citizen or operator.

    Fields:
    - `phone`: unique login identifier
    - `password`: salted pbkdf2 hash (never plaintext)
    - `role`: free-form role label, `user` unless given at registration
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    phone: str = Field(index=True, nullable=False, unique=True)
    password: str
    role: str = "user"
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class Service(SQLModel, table=True):
    """A catalog entry citizens can apply for."""
    __tablename__ = "services"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    fee: float = 0
    is_active: bool = True


class Application(SQLModel, table=True):
    """One citizen's request for a service.

    `registration_no` is the externally visible reference and never
    changes once issued. `service_name` is denormalized so applications
    survive catalog edits.
    """
    __tablename__ = "applications"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_name: str
    user_phone: str = Field(index=True)
    service_id: Optional[int] = Field(default=None, foreign_key="services.id")
    service_name: Optional[str] = None
    aadhaar_number: Optional[str] = None
    address: Optional[str] = None
    additional_info: Optional[str] = None
    registration_no: str = Field(index=True, unique=True, nullable=False)
    status: str = Field(default="pending", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    history: List["ApplicationHistory"] = Relationship(back_populates="application")


class ApplicationHistory(SQLModel, table=True):
    """An append-only ledger entry recording one status transition."""
    __tablename__ = "application_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    application_id: int = Field(foreign_key="applications.id", index=True)
    status: str
    remarks: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    application: Optional[Application] = Relationship(back_populates="history")
