"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
services, applications and their history ledger). Repositories return
SQLModel objects. Writes that must land together are committed inside a
single repository call; callers roll the session back on failure.
"""

from typing import List, Optional, Tuple
from sqlmodel import Session, select
from sqlalchemy import desc
from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_phone(self, phone: str) -> Optional[models.User]:
        """Return a `User` by phone or `None` if not found."""
        stmt = select(models.User).where(models.User.phone == phone)
        return self.session.exec(stmt).first()

    def get_active_by_phone(self, phone: str) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.phone == phone, models.User.is_active == True)  # noqa: E712
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def list_all(self) -> List[models.User]:
        """Return every user, newest first."""
        stmt = select(models.User).order_by(desc(models.User.created_at), desc(models.User.id))
        return self.session.exec(stmt).all()


class ServiceRepository:
    """Read access to the service catalog."""
    def __init__(self, session: Session):
        self.session = session

    def list_active(self) -> List[models.Service]:
        """Return active services ordered by name."""
        stmt = select(models.Service).where(models.Service.is_active == True).order_by(models.Service.name)  # noqa: E712
        return self.session.exec(stmt).all()

    def get(self, service_id: int) -> Optional[models.Service]:
        return self.session.get(models.Service, service_id)

    def get_by_name(self, name: str) -> Optional[models.Service]:
        stmt = select(models.Service).where(models.Service.name == name)
        return self.session.exec(stmt).first()


class ApplicationRepository:
    """Persistence for applications and their status history."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, application: models.Application, entry: models.ApplicationHistory) -> models.Application:
        """Insert an application and its first history entry in one commit.

        The application is flushed first to obtain its id, which is then
        assigned to the history entry before the shared commit.
        """
        self.session.add(application)
        self.session.flush()
        entry.application_id = application.id
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(application)
        return application

    def update_status(self, application: models.Application, entry: models.ApplicationHistory) -> models.Application:
        """Store a new status on `application` together with its ledger entry."""
        application.status = entry.status
        application.updated_at = models.utcnow()
        entry.application_id = application.id
        self.session.add(application)
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(application)
        return application

    def get(self, application_id: int) -> Optional[models.Application]:
        """Fetch an application by id."""
        return self.session.get(models.Application, application_id)

    def get_with_service(self, application_id: int) -> Optional[Tuple[models.Application, Optional[models.Service]]]:
        stmt = (
            select(models.Application, models.Service)
            .outerjoin(models.Service, models.Application.service_id == models.Service.id)
            .where(models.Application.id == application_id)
        )
        return self.session.exec(stmt).first()

    def list_with_service(self, phone: Optional[str] = None) -> List[Tuple[models.Application, Optional[models.Service]]]:
        """Return `(application, service)` pairs, most recent first.

        When `phone` is given only applications submitted with exactly
        that applicant phone are returned.
        """
        stmt = select(models.Application, models.Service).outerjoin(
            models.Service, models.Application.service_id == models.Service.id
        )
        if phone is not None:
            stmt = stmt.where(models.Application.user_phone == phone)
        stmt = stmt.order_by(desc(models.Application.created_at), desc(models.Application.id))
        return self.session.exec(stmt).all()

    def list_history(self, application_id: int) -> List[models.ApplicationHistory]:
        """List ledger entries for an application in the order they were written."""
        stmt = (
            select(models.ApplicationHistory)
            .where(models.ApplicationHistory.application_id == application_id)
            .order_by(models.ApplicationHistory.id)
        )
        return self.session.exec(stmt).all()
