"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and domain rules. Services perform presence validation, run the
application lifecycle and persist aggregates via repositories. Failures
are raised as the domain errors defined in `errors`.
"""

from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import jwt
import logging
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session
from . import models, repositories, schemas
from .config import settings
from .errors import AuthError, ConflictError, InternalError, NotFoundError, ValidationError
from .utils.registration import registration_numbers

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
JWT_SECRET = settings.JWT_SECRET
JWT_ALGORITHM = settings.JWT_ALGORITHM
JWT_EXPIRE_HOURS = settings.JWT_EXPIRE_HOURS

INITIAL_STATUS = "pending"
SUBMITTED_REMARKS = "Application submitted successfully"
DEFAULT_REMARKS = "Status updated"
DEFAULT_ACTOR = "admin"
REGISTRATION_RETRIES = 3

logger = logging.getLogger("seva_kendra.services")


def _clean(value) -> Optional[str]:
    """Strip a string value, mapping blanks to `None`."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _persistence_failure(session: Session, exc: SQLAlchemyError) -> InternalError:
    session.rollback()
    orig = getattr(exc, "orig", None)
    return InternalError(str(orig) if orig is not None else str(exc))


class AuthService:
    """Account operations: register, authenticate and list users."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, name: Optional[str], phone: Optional[str], password: Optional[str], role: Optional[str] = None) -> Tuple[schemas.UserOut, str]:
        """Create a new user with a hashed password.

        Returns the public view of the user and a signed token.
        """
        name, phone, role = _clean(name), _clean(phone), _clean(role)
        if not name or not phone or not password:
            raise ValidationError("Name, phone and password are required")
        try:
            if self.user_repo.get_by_phone(phone):
                raise ConflictError("Phone number already registered")
            u = models.User(name=name, phone=phone, password=PWD_CTX.hash(password), role=role or "user", is_active=True)
            user = self.user_repo.create(u)
        except IntegrityError as exc:
            # lost a race against a concurrent registration of the same phone
            self.session.rollback()
            raise ConflictError("Phone number already registered") from exc
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc
        logger.info("user registered id=%s role=%s", user.id, user.role)
        return schemas.UserOut.model_validate(user), self.issue_token(user)

    def authenticate(self, phone: Optional[str], password: Optional[str]) -> Tuple[schemas.UserOut, str]:
        """Verify credentials and return the user with a signed JWT token.

        Unknown phones, inactive accounts and wrong passwords all raise the
        same `AuthError` so callers cannot tell which one happened.
        """
        phone = _clean(phone)
        if not phone or not password:
            raise ValidationError("Phone and password are required")
        try:
            user = self.user_repo.get_active_by_phone(phone)
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc
        if not user:
            # burn the same hashing time as a real check
            PWD_CTX.dummy_verify()
            raise AuthError("Invalid phone or password")
        if not PWD_CTX.verify(password, user.password):
            raise AuthError("Invalid phone or password")
        logger.info("login succeeded id=%s role=%s", user.id, user.role)
        return schemas.UserOut.model_validate(user), self.issue_token(user)

    def issue_token(self, user: models.User) -> str:
        expire = datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "phone": user.phone, "exp": int(expire.timestamp())}
        return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)

    def list_users(self) -> List[schemas.UserOut]:
        """Return all users newest first, without password hashes."""
        try:
            users = self.user_repo.list_all()
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc
        return [schemas.UserOut.model_validate(u) for u in users]


class CatalogService:
    """Read-only access to the service catalog."""
    def __init__(self, session: Session):
        self.session = session
        self.service_repo = repositories.ServiceRepository(session)

    def list_services(self) -> List[schemas.ServiceOut]:
        try:
            services = self.service_repo.list_active()
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc
        return [schemas.ServiceOut.model_validate(s) for s in services]


class ApplicationService:
    """Application lifecycle: submission, status transitions and the history ledger.

    Every write of an application goes through this class so that each
    state change is paired with exactly one `ApplicationHistory` row in
    the same transaction.
    """
    def __init__(self, session: Session):
        self.session = session
        self.app_repo = repositories.ApplicationRepository(session)
        self.service_repo = repositories.ServiceRepository(session)

    def submit(
        self,
        user_name: Optional[str],
        user_phone: Optional[str],
        service_id: Optional[int] = None,
        service_name: Optional[str] = None,
        aadhaar_number: Optional[str] = None,
        address: Optional[str] = None,
        additional_info: Optional[str] = None,
    ) -> schemas.ApplicationOut:
        """Create an application in `pending` state with its first history entry.

        The service may be referenced by id, by name or both. The row and
        the history entry are committed together; if the generated
        registration number collides with an existing one the transaction
        is rolled back and retried with a fresh number.
        """
        user_name, user_phone, service_name = _clean(user_name), _clean(user_phone), _clean(service_name)
        if not user_name or not user_phone or (not service_name and service_id is None):
            raise ValidationError("User name, phone and service name are required")
        service = self._resolve_service(service_id, service_name)
        if service is not None:
            service_id = service.id
            service_name = service_name or service.name

        for attempt in range(1, REGISTRATION_RETRIES + 1):
            application = models.Application(
                user_name=user_name,
                user_phone=user_phone,
                service_id=service_id,
                service_name=service_name,
                aadhaar_number=_clean(aadhaar_number),
                address=_clean(address),
                additional_info=_clean(additional_info),
                registration_no=registration_numbers.next(),
                status=INITIAL_STATUS,
            )
            entry = models.ApplicationHistory(status=INITIAL_STATUS, remarks=SUBMITTED_REMARKS)
            try:
                created = self.app_repo.create(application, entry)
            except IntegrityError as exc:
                self.session.rollback()
                if attempt < REGISTRATION_RETRIES and "registration_no" in str(exc.orig):
                    logger.warning("registration number %s already taken, retrying", application.registration_no)
                    continue
                raise InternalError(str(exc.orig)) from exc
            except SQLAlchemyError as exc:
                raise _persistence_failure(self.session, exc) from exc
            logger.info("application submitted id=%s registration_no=%s", created.id, created.registration_no)
            return self._to_out(created, service)
        # unreachable: the last attempt either returns or raises
        raise InternalError("could not allocate a registration number")

    def update_status(self, application_id: int, status: Optional[str], remarks: Optional[str] = None, updated_by: Optional[str] = None) -> schemas.ApplicationOut:
        """Move an application to `status` and append the matching ledger entry.

        Any non-empty label is accepted unless strict status validation is
        enabled, in which case it must be one of the configured statuses.
        There is no terminal state: completed applications can move again.
        """
        status = _clean(status)
        if not status:
            raise ValidationError("Status is required")
        if settings.STRICT_STATUS_VALIDATION and status not in settings.APPLICATION_STATUSES:
            allowed = ", ".join(settings.APPLICATION_STATUSES)
            raise ValidationError(f"Unknown status '{status}'; expected one of: {allowed}")
        try:
            application = self.app_repo.get(application_id)
            if not application:
                raise NotFoundError("Application not found")
            previous = application.status
            actor = _clean(updated_by) or DEFAULT_ACTOR
            entry = models.ApplicationHistory(
                status=status,
                remarks=_clean(remarks) or DEFAULT_REMARKS,
                updated_by=actor,
            )
            updated = self.app_repo.update_status(application, entry)
            service = self.service_repo.get(updated.service_id) if updated.service_id is not None else None
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc
        logger.info("application %s status %s -> %s by %s", updated.id, previous, status, actor)
        return self._to_out(updated, service)

    def list_applications(self, phone: Optional[str] = None) -> List[schemas.ApplicationOut]:
        """List applications most recent first, optionally for one applicant phone."""
        try:
            # a supplied filter always filters, even when it strips to ""
            rows = self.app_repo.list_with_service(phone.strip() if phone else None)
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc
        return [self._to_out(application, service) for application, service in rows]

    def get_application(self, application_id: int) -> schemas.ApplicationOut:
        try:
            row = self.app_repo.get_with_service(application_id)
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc
        if not row:
            raise NotFoundError("Application not found")
        application, service = row
        return self._to_out(application, service)

    def history(self, application_id: int) -> List[schemas.HistoryOut]:
        """Return the status ledger for an application, oldest entry first."""
        try:
            if not self.app_repo.get(application_id):
                raise NotFoundError("Application not found")
            entries = self.app_repo.list_history(application_id)
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc
        return [schemas.HistoryOut.model_validate(e) for e in entries]

    def _resolve_service(self, service_id: Optional[int], service_name: Optional[str]) -> Optional[models.Service]:
        try:
            if service_id is not None:
                service = self.service_repo.get(service_id)
                if not service:
                    raise ValidationError(f"Unknown service id {service_id}")
                return service
            return self.service_repo.get_by_name(service_name)
        except SQLAlchemyError as exc:
            raise _persistence_failure(self.session, exc) from exc

    @staticmethod
    def _to_out(application: models.Application, service: Optional[models.Service]) -> schemas.ApplicationOut:
        out = schemas.ApplicationOut.model_validate(application)
        if service is not None:
            out.service_name = service.name
            out.fee = service.fee
        return out
