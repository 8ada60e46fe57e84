"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the academy content backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and wrap the result in the `{message, status, data}` envelope.
Errors raised anywhere below are converted to the same envelope by the
exception handlers registered here.

Endpoints implemented:
- POST /auth/create-admin, /auth/register, /auth/login
- GET /auth/is-authenticated, /auth/user
- GET /years, POST /years/create
- GET /faculties, GET /faculties/{id}, POST /faculties/create,
  POST /faculties/{id}/update, DELETE /faculties/{id}/delete
- GET /modules, POST /modules/create, GET /modules/{id},
  POST /modules/{id}/update, DELETE /modules/{id}/delete,
  GET /modules/{id}/subjects, POST /modules/{id}/subjects/create
- GET /subjects/{id}, POST /subjects/{id}/update,
  DELETE /subjects/{id}/delete, GET /subjects/{id}/lectures,
  POST /subjects/{id}/lectures/create
- GET /lectures/{id}, POST /lectures/{id}/update,
  DELETE /lectures/{id}/delete, GET /lectures/{id}/links,
  POST /lectures/{id}/links/create
- GET /links/{id}, POST /links/{id}/update, DELETE /links/{id}/delete
- GET /health
"""

from typing import Any, Optional
import json
import logging
import time
import uuid

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import errors, models, responses, services
from .auth import get_current_user, get_optional_user
from .config import settings
from .database import create_db_and_tables, get_session
from .schemas import LoginIn, RegisterIn, TokenOut
from .utils.rate_limit import AttemptLimiter

app = FastAPI(title="Academy Content API")
logger = logging.getLogger("academy.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)
_login_limiter = AttemptLimiter()

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()

Payload = Optional[Any]


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(errors.AppError)
async def app_error_handler(request: Request, exc: errors.AppError):
    if isinstance(exc, errors.ValidationError):
        return responses.validation_errors(exc.errors, exc.message)
    if exc.status_code >= 500:
        logger.error("internal error on %s %s: %s", request.method, request.url.path, exc.message)
    return responses.send(exc.message, exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return responses.validation_errors([
        {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
        for err in exc.errors()
    ])


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return responses.not_found()
    if exc.status_code == 401:
        return responses.unauthorized()
    if exc.status_code == 400:
        return responses.bad_request(str(exc.detail))
    return responses.send(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return responses.send("Error - Something Went Wrong.", 500)


def _enforce_login_rate_limit(request: Request, username: str) -> str:
    key = f"{request.client.host if request.client else 'unknown'}:{username.lower()}"
    allowed, retry_after = _login_limiter.hit(
        key, settings.LOGIN_RATE_LIMIT_PER_MIN, settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS
    )
    if not allowed:
        logger.warning("login throttled for %s", key)
        raise errors.RateLimited(retry_after)
    return key


# --- auth -----------------------------------------------------------------

@app.post('/auth/create-admin')
def create_admin(payload: RegisterIn, db: Session = Depends(get_session)):
    """Create the first Admin account. Refused once an Admin exists."""
    user = services.AuthService(db).create_admin(payload.username, payload.password, payload.year_id)
    return responses.send("Admin account has been created", 201, services.public_user(user))


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new Student enrolled in `year_id`."""
    user = services.AuthService(db).register(payload.username, payload.password, payload.year_id)
    return responses.send("User has been registered", 201, services.public_user(user))


@app.post('/auth/login')
def login(payload: LoginIn, request: Request, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The returned token contains `user_id`, `username` and `role` and is
    signed using the configured JWT secret. Repeated attempts for the same
    client/username pair are throttled.
    """
    key = _enforce_login_rate_limit(request, payload.username)
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise errors.Unauthorized('invalid credentials')
    _login_limiter.reset(key)
    return responses.send("Logged in", 200, TokenOut(access_token=token))


@app.get('/auth/is-authenticated')
def is_authenticated(user: Optional[models.User] = Depends(get_optional_user)):
    """Report whether the request carries a valid token. Never 401s."""
    return responses.send("Authentication status", 200, {'authenticated': user is not None})


@app.get('/auth/user')
def get_user_data(user: models.User = Depends(get_current_user)):
    """Return the authenticated user's public profile."""
    return responses.send("User data", 200, services.public_user(user))


# --- years ----------------------------------------------------------------

@app.get('/years')
def list_years(db: Session = Depends(get_session)):
    """List academic years (public, needed to pick one at registration)."""
    return responses.send("Years", 200, services.YearService(db).list())


@app.post('/years/create')
def create_year(payload: Payload = Body(default=None), db: Session = Depends(get_session),
                user: models.User = Depends(get_current_user)):
    year = services.YearService(db).create(user, payload)
    return responses.send("Year has been created", 201, year)


# --- faculties ------------------------------------------------------------

@app.get('/faculties')
def list_faculties(search: str = '', order_by: str = 'id', order_type: str = 'desc',
                   skip: int = 0, take: Optional[int] = None,
                   db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Search faculties by name; paginated when `take` is given."""
    faculties = services.FacultyService(db).list(user, search, order_by, order_type, skip, take)
    return responses.send("Faculties", 200, faculties)


@app.get('/faculties/{faculty_id}')
def get_faculty(faculty_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    faculty = services.FacultyService(db).get(user, faculty_id)
    return responses.send(f"facultyId [{faculty_id}] - Data", 200, faculty)


@app.post('/faculties/create')
def create_faculty(payload: Payload = Body(default=None), db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    faculty = services.FacultyService(db).create(user, payload)
    return responses.send("Faculty has been created", 201, faculty)


@app.post('/faculties/{faculty_id}/update')
def update_faculty(faculty_id: int, payload: Payload = Body(default=None), db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    faculty = services.FacultyService(db).update(user, faculty_id, payload)
    return responses.send("Faculty has been updated", 200, faculty)


@app.delete('/faculties/{faculty_id}/delete')
def delete_faculty(faculty_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    faculty = services.FacultyService(db).delete(user, faculty_id)
    return responses.send("Faculty has been deleted", 200, faculty)


# --- modules --------------------------------------------------------------

@app.get('/modules')
def list_modules(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List the modules of the caller's year."""
    return responses.send("Modules", 200, services.ModuleService(db).list(user))


@app.post('/modules/create')
def create_module(payload: Payload = Body(default=None), db: Session = Depends(get_session),
                  user: models.User = Depends(get_current_user)):
    """Create a module; `year_id` defaults to (and must equal) the caller's year."""
    module = services.ModuleService(db).create(user, payload)
    return responses.send("Module has been created", 201, module)


@app.get('/modules/{module_id}')
def get_module(module_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    module = services.ModuleService(db).get(user, module_id)
    return responses.send(f"moduleId [{module_id}] - Data", 200, module)


@app.post('/modules/{module_id}/update')
def update_module(module_id: int, payload: Payload = Body(default=None), db: Session = Depends(get_session),
                  user: models.User = Depends(get_current_user)):
    module = services.ModuleService(db).update(user, module_id, payload)
    return responses.send("Module has been updated", 200, module)


@app.delete('/modules/{module_id}/delete')
def delete_module(module_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Delete a module with every subject, lecture and link below it."""
    module = services.ModuleService(db).delete(user, module_id)
    return responses.send("Module has been deleted", 200, module)


@app.get('/modules/{module_id}/subjects')
def list_subjects(module_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    subjects = services.ModuleService(db).list_subjects(user, module_id)
    return responses.send(f"moduleId [{module_id}] - Subjects", 200, subjects)


@app.post('/modules/{module_id}/subjects/create')
def create_subject(module_id: int, payload: Payload = Body(default=None), db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    subject = services.ModuleService(db).create_subject(user, module_id, payload)
    return responses.send("Subject has been created", 201, subject)


# --- subjects -------------------------------------------------------------

@app.get('/subjects/{subject_id}')
def get_subject(subject_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    subject = services.SubjectService(db).get(user, subject_id)
    return responses.send(f"subjectId [{subject_id}] - Data", 200, subject)


@app.post('/subjects/{subject_id}/update')
def update_subject(subject_id: int, payload: Payload = Body(default=None), db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    subject = services.SubjectService(db).update(user, subject_id, payload)
    return responses.send("Subject has been updated", 200, subject)


@app.delete('/subjects/{subject_id}/delete')
def delete_subject(subject_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    subject = services.SubjectService(db).delete(user, subject_id)
    return responses.send("Subject has been deleted", 200, subject)


@app.get('/subjects/{subject_id}/lectures')
def list_lectures(subject_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    lectures = services.SubjectService(db).list_lectures(user, subject_id)
    return responses.send(f"subjectId [{subject_id}] - Lectures", 200, lectures)


@app.post('/subjects/{subject_id}/lectures/create')
def create_lecture(subject_id: int, payload: Payload = Body(default=None), db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    lecture = services.SubjectService(db).create_lecture(user, subject_id, payload)
    return responses.send("Lecture has been created", 201, lecture)


# --- lectures -------------------------------------------------------------

@app.get('/lectures/{lecture_id}')
def get_lecture(lecture_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Return a lecture (with its subject) from the caller's year."""
    lecture = services.LectureService(db).get(user, lecture_id)
    return responses.send(f"lectureId [{lecture_id}] - Data", 200, lecture)


@app.post('/lectures/{lecture_id}/update')
def update_lecture(lecture_id: int, payload: Payload = Body(default=None), db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    lecture = services.LectureService(db).update(user, lecture_id, payload)
    return responses.send("Lecture has been updated", 200, lecture)


@app.delete('/lectures/{lecture_id}/delete')
def delete_lecture(lecture_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    lecture = services.LectureService(db).delete(user, lecture_id)
    return responses.send("Lecture has been deleted", 200, lecture)


@app.get('/lectures/{lecture_id}/links')
def get_links(lecture_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    links = services.LectureService(db).list_links(user, lecture_id)
    return responses.send(f"lectureId [{lecture_id}] - Links", 200, links)


@app.post('/lectures/{lecture_id}/links/create')
def create_link(lecture_id: int, payload: Payload = Body(default=None), db: Session = Depends(get_session),
                user: models.User = Depends(get_current_user)):
    link = services.LectureService(db).create_link(user, lecture_id, payload)
    return responses.send("Lecture Link has been created", 201, link)


# --- links ----------------------------------------------------------------

@app.get('/links/{link_id}')
def get_link(link_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    link = services.LinkService(db).get(user, link_id)
    return responses.send(f"linkId [{link_id}] - Data", 200, link)


@app.post('/links/{link_id}/update')
def update_link(link_id: int, payload: Payload = Body(default=None), db: Session = Depends(get_session),
                user: models.User = Depends(get_current_user)):
    link = services.LinkService(db).update(user, link_id, payload)
    return responses.send("Link has been updated", 200, link)


@app.delete('/links/{link_id}/delete')
def delete_link(link_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    link = services.LinkService(db).delete(user, link_id)
    return responses.send("Link has been deleted", 200, link)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return responses.send("ok", 200)
