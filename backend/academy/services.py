"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
the authorization policy and payload validation. Services are
intentionally thin: they authorize the caller, validate input, and
persist aggregates via repositories. Failures are raised as
`errors.AppError` subclasses and turned into responses by `main.py`.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import List, Optional
from passlib.context import CryptContext
import jwt
from sqlmodel import Session
from . import errors, models, policy, repositories, schemas
from .config import settings
from .policy import Actor, OwnershipChain

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

logger = logging.getLogger("academy.services")


def public_user(user: models.User) -> schemas.UserOut:
    return schemas.UserOut.model_validate(user)


def snapshot(obj) -> dict:
    """Plain copy of a row, taken before it is deleted."""
    return obj.model_dump()


class AuthService:
    """Authentication related operations (register, admin bootstrap, tokens)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.year_repo = repositories.YearRepository(session)

    def register(self, username: str, password: str, year_id: int,
                 role: models.UserRole = models.UserRole.STUDENT) -> models.User:
        """Create a new user with a hashed password.

        Raises `Conflict` when the username is taken and `NotFound` when
        the year does not exist. Returns the persisted `User` instance.
        """
        if self.user_repo.get_by_username(username):
            raise errors.Conflict(f"Username '{username}' is already taken.")
        if not self.year_repo.get(year_id):
            raise errors.NotFound("Year doesn't exist.")
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username, password_hash=hashed, role=role, year_id=year_id)
        user = self.user_repo.create(u)
        logger.info("user registered id=%s role=%s year=%s", user.id, user.role.value, user.year_id)
        return user

    def create_admin(self, username: str, password: str, year_id: int) -> models.User:
        """Bootstrap the first Admin account; refused once any Admin exists."""
        if self.user_repo.admin_exists():
            raise errors.Conflict("An admin account already exists.")
        return self.register(username, password, year_id, role=models.UserRole.ADMIN)

    def authenticate(self, username: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        return self.issue_token(user)

    @staticmethod
    def issue_token(user: models.User) -> str:
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {
            "user_id": user.id,
            "username": user.username,
            "role": user.role.value,
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class _AuthorizedService:
    """Base for services whose operations go through the policy."""
    def __init__(self, session: Session):
        self.session = session

    def _require(self, user: Optional[models.User], chain: OwnershipChain,
                 mutating: bool = False, action: str = "perform this action") -> Actor:
        actor = Actor.from_user(user)
        policy.authorize(actor, chain, mutating=mutating, action=action).enforce()
        return actor

    def _require_role(self, user: Optional[models.User], mutating: bool = False,
                      action: str = "perform this action") -> Actor:
        actor = Actor.from_user(user)
        policy.check_role(actor, mutating, action).enforce()
        return actor


class YearService(_AuthorizedService):
    """Academic years; readable by anyone, created by admins."""
    def __init__(self, session: Session):
        super().__init__(session)
        self.repo = repositories.YearRepository(session)

    def list(self) -> List[models.Year]:
        return self.repo.list()

    def create(self, user: models.User, payload) -> models.Year:
        self._require_role(user, mutating=True, action="create a year")
        data = schemas.parse_payload(schemas.YearIn, payload)
        if self.repo.get_by_name(data.name):
            raise errors.Conflict(f"Year '{data.name}' already exists.")
        return self.repo.create(models.Year(name=data.name))


class FacultyService(_AuthorizedService):
    """Faculties are not year-scoped: only the Admin precondition applies."""
    def __init__(self, session: Session):
        super().__init__(session)
        self.repo = repositories.FacultyRepository(session)

    def list(self, user: models.User, search: str = '', order_by: str = 'id', order_type: str = 'desc',
             skip: int = 0, take: Optional[int] = None) -> List[models.Faculty]:
        """Search faculties by name, optionally paginated with `skip`/`take`.

        Without `take` the whole list is returned, unless `skip` is given,
        in which case a page of `DEFAULT_PAGE_SIZE` rows is used.
        """
        self._require_role(user)
        if order_by not in self.repo.ORDERABLE:
            raise errors.BadRequest(f"Invalid order_by '{order_by}'.")
        order_type = (order_type or 'desc').lower()
        if order_type not in ('asc', 'desc'):
            raise errors.BadRequest(f"Invalid order_type '{order_type}'.")
        if skip < 0:
            raise errors.BadRequest("skip must be >= 0")
        if take is None:
            if not skip:
                return self.repo.find_all(search, order_by, order_type)
            take = settings.DEFAULT_PAGE_SIZE
        if take <= 0:
            raise errors.BadRequest("take must be > 0")
        return self.repo.paginate(search, skip, min(take, settings.MAX_PAGE_SIZE), order_by, order_type)

    def get(self, user: models.User, faculty_id: int) -> models.Faculty:
        self._require_role(user)
        return self._get_or_404(faculty_id)

    def create(self, user: models.User, payload) -> models.Faculty:
        self._require_role(user, mutating=True, action="create a faculty")
        data = schemas.parse_payload(schemas.FacultyIn, payload)
        return self.repo.create(models.Faculty(**data.model_dump()))

    def update(self, user: models.User, faculty_id: int, payload) -> models.Faculty:
        self._require_role(user, mutating=True, action="update a faculty")
        faculty = self._get_or_404(faculty_id)
        data = schemas.parse_payload(schemas.FacultyUpdate, payload, partial=True)
        return self.repo.update(faculty, schemas.changes(data))

    def delete(self, user: models.User, faculty_id: int) -> dict:
        self._require_role(user, mutating=True, action="delete a faculty")
        faculty = self._get_or_404(faculty_id)
        deleted = snapshot(faculty)
        self.repo.delete(faculty)
        return deleted

    def _get_or_404(self, faculty_id: int) -> models.Faculty:
        faculty = self.repo.get(faculty_id)
        if not faculty:
            raise errors.NotFound("Faculty doesn't exist.")
        return faculty


class ModuleService(_AuthorizedService):
    """Modules of the caller's year and their subjects."""
    def __init__(self, session: Session):
        super().__init__(session)
        self.repo = repositories.ModuleRepository(session)
        self.subject_repo = repositories.SubjectRepository(session)

    def list(self, user: models.User) -> List[models.Module]:
        actor = self._require_role(user)
        return self.repo.list_for_year(actor.year_id)

    def get(self, user: models.User, module_id: int) -> models.Module:
        self._require(user, self.repo.resolve(module_id))
        return self.repo.get(module_id)

    def create(self, user: models.User, payload) -> models.Module:
        actor = self._require_role(user, mutating=True, action="create a module")
        data = schemas.parse_payload(schemas.ModuleIn, payload)
        year_id = data.year_id if data.year_id is not None else actor.year_id
        self._check_target_year(user, year_id, "create a module")
        self._check_faculty(data.faculty_id)
        values = data.model_dump()
        values['year_id'] = year_id
        return self.repo.create(models.Module(**values))

    def update(self, user: models.User, module_id: int, payload) -> models.Module:
        self._require(user, self.repo.resolve(module_id), mutating=True, action="update a module")
        data = schemas.parse_payload(schemas.ModuleUpdate, payload, partial=True)
        values = schemas.changes(data)
        if 'year_id' in values:
            self._check_target_year(user, values['year_id'], "update a module")
        if values.get('faculty_id') is not None:
            self._check_faculty(values['faculty_id'])
        return self.repo.update(self.repo.get(module_id), values)

    def delete(self, user: models.User, module_id: int) -> dict:
        self._require(user, self.repo.resolve(module_id), mutating=True, action="delete a module")
        module = self.repo.get(module_id)
        deleted = snapshot(module)
        self.repo.delete(module)
        return deleted

    def list_subjects(self, user: models.User, module_id: int) -> List[models.Subject]:
        self._require(user, self.repo.resolve(module_id))
        return self.subject_repo.list_for_module(module_id)

    def create_subject(self, user: models.User, module_id: int, payload) -> models.Subject:
        self._require(user, self.repo.resolve(module_id), mutating=True, action="create a subject")
        data = schemas.parse_payload(schemas.SubjectIn, payload)
        return self.subject_repo.create(models.Subject(**data.model_dump(), module_id=module_id))

    def _check_target_year(self, user: models.User, year_id: Optional[int], action: str) -> None:
        if year_id is None or not repositories.YearRepository(self.session).get(year_id):
            raise errors.NotFound("Year doesn't exist.")
        # a module may only be placed in the caller's own year
        self._require(user, OwnershipChain(module_year_id=year_id), mutating=True, action=action)

    def _check_faculty(self, faculty_id: Optional[int]) -> None:
        if faculty_id is not None and not repositories.FacultyRepository(self.session).get(faculty_id):
            raise errors.NotFound("Faculty doesn't exist.")


class SubjectService(_AuthorizedService):
    """Subjects and the lectures they contain."""
    def __init__(self, session: Session):
        super().__init__(session)
        self.repo = repositories.SubjectRepository(session)
        self.lecture_repo = repositories.LectureRepository(session)

    def get(self, user: models.User, subject_id: int) -> models.Subject:
        self._require(user, self.repo.resolve(subject_id))
        return self.repo.get(subject_id)

    def update(self, user: models.User, subject_id: int, payload) -> models.Subject:
        self._require(user, self.repo.resolve(subject_id), mutating=True, action="update a subject")
        data = schemas.parse_payload(schemas.SubjectUpdate, payload, partial=True)
        values = schemas.changes(data)
        if 'module_id' in values:
            # moving a subject needs access to the destination module as well
            self._require(user, repositories.ModuleRepository(self.session).resolve(values['module_id']),
                          mutating=True, action="update a subject")
        return self.repo.update(self.repo.get(subject_id), values)

    def delete(self, user: models.User, subject_id: int) -> dict:
        self._require(user, self.repo.resolve(subject_id), mutating=True, action="delete a subject")
        subject = self.repo.get(subject_id)
        deleted = snapshot(subject)
        self.repo.delete(subject)
        return deleted

    def list_lectures(self, user: models.User, subject_id: int) -> List[models.Lecture]:
        self._require(user, self.repo.resolve(subject_id))
        return self.lecture_repo.list_for_subject(subject_id)

    def create_lecture(self, user: models.User, subject_id: int, payload) -> models.Lecture:
        self._require(user, self.repo.resolve(subject_id), mutating=True, action="create a lecture")
        data = schemas.parse_payload(schemas.LectureIn, payload)
        return self.lecture_repo.create(models.Lecture(**data.model_dump(), subject_id=subject_id))


class LectureService(_AuthorizedService):
    """Lectures and their links."""
    def __init__(self, session: Session):
        super().__init__(session)
        self.repo = repositories.LectureRepository(session)
        self.link_repo = repositories.LinkRepository(session)

    def get(self, user: models.User, lecture_id: int) -> dict:
        """Return the lecture together with its subject."""
        self._require(user, self.repo.resolve(lecture_id))
        lecture = self.repo.get(lecture_id)
        subject = repositories.SubjectRepository(self.session).get(lecture.subject_id)
        return {**lecture.model_dump(), 'subject': subject.model_dump()}

    def update(self, user: models.User, lecture_id: int, payload) -> models.Lecture:
        self._require(user, self.repo.resolve(lecture_id), mutating=True, action="update a lecture")
        data = schemas.parse_payload(schemas.LectureUpdate, payload, partial=True)
        values = schemas.changes(data)
        if 'subject_id' in values:
            self._require(user, repositories.SubjectRepository(self.session).resolve(values['subject_id']),
                          mutating=True, action="update a lecture")
        return self.repo.update(self.repo.get(lecture_id), values)

    def delete(self, user: models.User, lecture_id: int) -> dict:
        self._require(user, self.repo.resolve(lecture_id), mutating=True, action="delete a lecture")
        lecture = self.repo.get(lecture_id)
        deleted = snapshot(lecture)
        self.repo.delete(lecture)
        return deleted

    def list_links(self, user: models.User, lecture_id: int) -> List[models.LectureLink]:
        self._require(user, self.repo.resolve(lecture_id))
        return self.link_repo.list_for_lecture(lecture_id)

    def create_link(self, user: models.User, lecture_id: int, payload) -> models.LectureLink:
        self._require(user, self.repo.resolve(lecture_id), mutating=True, action="create a link")
        data = schemas.parse_payload(schemas.LinkIn, payload)
        return self.link_repo.create(models.LectureLink(**data.model_dump(), lecture_id=lecture_id))


class LinkService(_AuthorizedService):
    """Single lecture links addressed by id."""
    def __init__(self, session: Session):
        super().__init__(session)
        self.repo = repositories.LinkRepository(session)

    def get(self, user: models.User, link_id: int) -> models.LectureLink:
        self._require(user, self.repo.resolve(link_id))
        return self.repo.get(link_id)

    def update(self, user: models.User, link_id: int, payload) -> models.LectureLink:
        self._require(user, self.repo.resolve(link_id), mutating=True, action="update a link")
        data = schemas.parse_payload(schemas.LinkUpdate, payload, partial=True)
        return self.repo.update(self.repo.get(link_id), schemas.changes(data))

    def delete(self, user: models.User, link_id: int) -> dict:
        self._require(user, self.repo.resolve(link_id), mutating=True, action="delete a link")
        link = self.repo.get(link_id)
        deleted = snapshot(link)
        self.repo.delete(link)
        return deleted
