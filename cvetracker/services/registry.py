import abc
import enum
import logging
import threading

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cvetracker.errors import MediumUnavailable
from cvetracker.models import User
from cvetracker.services.validator import as_utc, utcnow

logger = logging.getLogger(__name__)


class RegistrationResult(enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


class UserRegistry(abc.ABC):
    @abc.abstractmethod
    def register(self, username: str, password: str, email: str) -> RegistrationResult:
        """Create an account unless the username or the email is already taken."""

    @abc.abstractmethod
    def find(self, username: str):
        ...

    @abc.abstractmethod
    def count(self) -> int:
        ...


class InMemoryUserRegistry(UserRegistry):
    def __init__(self):
        self._lock = threading.Lock()
        self._users = []

    def register(self, username, password, email):
        with self._lock:
            if any(u["username"] == username or u["email"] == email for u in self._users):
                return RegistrationResult.ALREADY_EXISTS
            self._users.append({
                "username": username,
                "password": password,
                "email": email,
                "registrationDate": utcnow(),
            })
        logger.info("User registered: %s", username)
        return RegistrationResult.CREATED

    def find(self, username):
        with self._lock:
            for user in self._users:
                if user["username"] == username:
                    return dict(user)
        return None

    def count(self):
        with self._lock:
            return len(self._users)


class SqlUserRegistry(UserRegistry):
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def register(self, username, password, email):
        db = self._session_factory()
        try:
            existing = db.query(User).filter(
                or_(User.username == username, User.email == email)
            ).first()
            if existing is not None:
                return RegistrationResult.ALREADY_EXISTS

            db.add(User(
                username=username,
                password=password,
                email=email,
                registration_date=utcnow(),
            ))
            try:
                db.commit()
            except IntegrityError:
                # Lost a race with a concurrent registration of the same name or email
                db.rollback()
                return RegistrationResult.ALREADY_EXISTS
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Registration error: %s", e)
            raise MediumUnavailable("Internal Server Error during registration.") from e
        finally:
            db.close()

        logger.info("User registered: %s", username)
        return RegistrationResult.CREATED

    def find(self, username):
        db = self._session_factory()
        try:
            user = db.query(User).filter(User.username == username).first()
            if user is None:
                return None
            return {
                "username": user.username,
                "password": user.password,
                "email": user.email,
                "registrationDate": as_utc(user.registration_date),
            }
        except SQLAlchemyError as e:
            logger.exception("registry: lookup failed: %s", e)
            raise MediumUnavailable() from e
        finally:
            db.close()

    def count(self):
        db = self._session_factory()
        try:
            return db.query(User).count()
        except SQLAlchemyError as e:
            logger.exception("registry: count failed: %s", e)
            raise MediumUnavailable() from e
        finally:
            db.close()
