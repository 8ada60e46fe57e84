"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
years, faculties, modules, subjects, lectures, links). Repositories
return SQLModel objects and perform commits/refreshes where appropriate.

Content repositories also expose a `resolve` helper that walks a record
up its containment chain to the owning module and reports the result as
a `policy.OwnershipChain`.
"""

from typing import List, Optional, Sequence
from sqlmodel import Session, select, col
from . import models
from .models import utcnow
from .policy import OwnershipChain

# SQLite INTEGER primary keys are signed 64-bit
MAX_ID = 2**63 - 1


class _Repository:
    """Shared persistence helpers."""
    model = None

    def __init__(self, session: Session):
        self.session = session

    def get(self, obj_id: int):
        """Fetch a row by primary key or `None`.

        Ids outside the storable range can't name a row, so they are
        reported as missing instead of reaching the driver.
        """
        if obj_id is None or not 0 < obj_id <= MAX_ID:
            return None
        return self.session.get(self.model, obj_id)

    def create(self, obj):
        """Persist a new row and return the managed instance."""
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def update(self, obj, changes: dict):
        """Apply `changes` to `obj`, bump `updated_at` when present and commit."""
        for key, value in changes.items():
            setattr(obj, key, value)
        if hasattr(obj, 'updated_at'):
            obj.updated_at = utcnow()
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def _delete_all(self, rows: Sequence) -> None:
        for row in rows:
            self.session.delete(row)


class UserRepository(_Repository):
    """CRUD operations for `User` objects."""
    model = models.User

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def admin_exists(self) -> bool:
        stmt = select(models.User.id).where(models.User.role == models.UserRole.ADMIN)
        return self.session.exec(stmt).first() is not None


class YearRepository(_Repository):
    """Academic years."""
    model = models.Year

    def list(self) -> List[models.Year]:
        return self.session.exec(select(models.Year).order_by(models.Year.id)).all()

    def get_by_name(self, name: str) -> Optional[models.Year]:
        return self.session.exec(select(models.Year).where(models.Year.name == name)).first()


class FacultyRepository(_Repository):
    """Faculty lookups with search, ordering and pagination."""
    model = models.Faculty
    ORDERABLE = ('id', 'name', 'city', 'created_at', 'updated_at')

    def _query(self, search: str, order_by: str, order_type: str):
        column = getattr(models.Faculty, order_by)
        stmt = select(models.Faculty)
        if search:
            stmt = stmt.where(col(models.Faculty.name).contains(search, autoescape=True))
        return stmt.order_by(column.desc() if order_type == 'desc' else column.asc())

    def find_all(self, search: str = '', order_by: str = 'id', order_type: str = 'desc') -> List[models.Faculty]:
        """Return every faculty whose name contains `search`."""
        return self.session.exec(self._query(search, order_by, order_type)).all()

    def paginate(self, search: str = '', skip: int = 0, take: int = 10, order_by: str = 'id', order_type: str = 'desc') -> List[models.Faculty]:
        """Same as `find_all` restricted to a `skip`/`take` window."""
        stmt = self._query(search, order_by, order_type).offset(skip).limit(take)
        return self.session.exec(stmt).all()

    def delete(self, faculty: models.Faculty) -> None:
        """Delete a faculty and detach its modules."""
        modules = self.session.exec(select(models.Module).where(models.Module.faculty_id == faculty.id)).all()
        for m in modules:
            m.faculty_id = None
            self.session.add(m)
        self.session.delete(faculty)
        self.session.commit()


class ModuleRepository(_Repository):
    """Modules and the cascade below them."""
    model = models.Module

    def list_for_year(self, year_id: Optional[int]) -> List[models.Module]:
        stmt = select(models.Module).where(models.Module.year_id == year_id).order_by(models.Module.id)
        return self.session.exec(stmt).all()

    def resolve(self, module_id: int) -> OwnershipChain:
        """The chain of a module is the module itself."""
        module = self.get(module_id)
        if not module:
            return OwnershipChain.broken('Module')
        return OwnershipChain(module_year_id=module.year_id)

    def delete(self, module: models.Module) -> None:
        """Delete a module together with its subjects, lectures and links."""
        subjects = self.session.exec(select(models.Subject).where(models.Subject.module_id == module.id)).all()
        for s in subjects:
            SubjectRepository(self.session).delete(s, commit=False)
        self.session.delete(module)
        self.session.commit()


class SubjectRepository(_Repository):
    """Subjects of a module."""
    model = models.Subject

    def list_for_module(self, module_id: int) -> List[models.Subject]:
        stmt = select(models.Subject).where(models.Subject.module_id == module_id).order_by(models.Subject.id)
        return self.session.exec(stmt).all()

    def resolve(self, subject_id: int) -> OwnershipChain:
        """Walk subject -> module."""
        subject = self.get(subject_id)
        if not subject:
            return OwnershipChain.broken('Subject')
        return ModuleRepository(self.session).resolve(subject.module_id)

    def delete(self, subject: models.Subject, commit: bool = True) -> None:
        """Delete a subject with its lectures and links."""
        lectures = self.session.exec(select(models.Lecture).where(models.Lecture.subject_id == subject.id)).all()
        for lec in lectures:
            LectureRepository(self.session).delete(lec, commit=False)
        self.session.delete(subject)
        if commit:
            self.session.commit()


class LectureRepository(_Repository):
    """Lectures of a subject."""
    model = models.Lecture

    def list_for_subject(self, subject_id: int) -> List[models.Lecture]:
        stmt = select(models.Lecture).where(models.Lecture.subject_id == subject_id).order_by(models.Lecture.id)
        return self.session.exec(stmt).all()

    def resolve(self, lecture_id: int) -> OwnershipChain:
        """Walk lecture -> subject -> module."""
        lecture = self.get(lecture_id)
        if not lecture:
            return OwnershipChain.broken('Lecture')
        return SubjectRepository(self.session).resolve(lecture.subject_id)

    def delete(self, lecture: models.Lecture, commit: bool = True) -> None:
        """Delete a lecture and its links."""
        self._delete_all(LinkRepository(self.session).list_for_lecture(lecture.id))
        self.session.delete(lecture)
        if commit:
            self.session.commit()


class LinkRepository(_Repository):
    """Links attached to a lecture."""
    model = models.LectureLink

    def list_for_lecture(self, lecture_id: int) -> List[models.LectureLink]:
        stmt = select(models.LectureLink).where(models.LectureLink.lecture_id == lecture_id).order_by(models.LectureLink.id)
        return self.session.exec(stmt).all()

    def resolve(self, link_id: int) -> OwnershipChain:
        """Walk link -> lecture -> subject -> module."""
        link = self.get(link_id)
        if not link:
            return OwnershipChain.broken('Link')
        return LectureRepository(self.session).resolve(link.lecture_id)

    def delete(self, link: models.LectureLink) -> None:
        self.session.delete(link)
        self.session.commit()
