"""CLI script to bootstrap an Admin account directly against the backend DB.
Usage: python scripts/create_admin.py USERNAME PASSWORD --year "Year 1"
"""
import sys
import argparse
import pathlib
from typing import Optional
# Ensure `backend/` is on sys.path so `academy` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from academy import errors, models, services
from academy.database import engine, create_db_and_tables
from academy.repositories import YearRepository


def main(username: str, password: str, year: str, echo=print) -> Optional[int]:
    """Create the Admin `username` enrolled in `year`, creating the year if needed.

    Returns the new user's id, or `None` when an Admin already exists or
    the username is taken. Results are printed for a quick CLI feedback loop.
    """
    create_db_and_tables()
    with Session(engine) as session:
        year_repo = YearRepository(session)
        year_row = year_repo.get_by_name(year)
        if not year_row:
            year_row = year_repo.create(models.Year(name=year))
            echo(f'Created year {year!r} (id {year_row.id})')
        try:
            user = services.AuthService(session).create_admin(username, password, year_row.id)
        except errors.Conflict as e:
            echo(f'Not created: {e.message}')
            return None
        echo(f'Admin {user.username!r} created with id {user.id} in {year!r}')
        return user.id


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('username')
    parser.add_argument('password')
    parser.add_argument('--year', default='Year 1', help='Year name the admin is assigned to')
    args = parser.parse_args()
    sys.exit(0 if main(args.username, args.password, args.year) is not None else 1)
