import importlib.util
from pathlib import Path

from academy import models
from academy.repositories import UserRepository, YearRepository

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "create_admin.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("create_admin_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_create_admin_script_bootstraps_year_and_admin(session):
    script = _load_script()
    out = []
    user_id = script.main("dean", "deanpass", "Year 9", echo=out.append)
    assert user_id is not None
    session.expire_all()
    user = UserRepository(session).get(user_id)
    assert user.role == models.UserRole.ADMIN
    assert user.year_id == YearRepository(session).get_by_name("Year 9").id
    assert any("Created year" in line for line in out)

    assert script.main("dean2", "deanpass", "Year 9", echo=out.append) is None
    assert out[-1] == "Not created: An admin account already exists."
