import pytest

from academy import errors
from academy.models import User, UserRole
from academy.policy import (
    Actor,
    Outcome,
    OwnershipChain,
    authorize,
    check_ownership,
    check_role,
)

YEARS = [1, 2, 3]


def student(year):
    return Actor(id=10, role=UserRole.STUDENT, year_id=year)


def admin(year):
    return Actor(id=1, role=UserRole.ADMIN, year_id=year)


@pytest.mark.parametrize("actor_year", YEARS)
@pytest.mark.parametrize("module_year", YEARS)
def test_student_read_is_scoped_to_own_year(actor_year, module_year):
    decision = authorize(student(actor_year), OwnershipChain(module_year_id=module_year))
    if actor_year == module_year:
        assert decision.outcome is Outcome.AUTHORIZED
        assert decision.allowed
    else:
        assert decision.outcome is Outcome.UNAUTHORIZED


@pytest.mark.parametrize("actor_year", YEARS)
@pytest.mark.parametrize("module_year", YEARS)
def test_student_can_never_mutate(actor_year, module_year):
    decision = authorize(student(actor_year), OwnershipChain(module_year_id=module_year), mutating=True,
                         action="delete a link")
    assert decision.outcome is Outcome.UNAUTHORIZED
    assert decision.reason == "Unauthorized cannot delete a link."


def test_admin_mutates_in_own_year():
    assert authorize(admin(2), OwnershipChain(module_year_id=2), mutating=True).allowed


def test_admin_is_still_year_scoped():
    assert authorize(admin(2), OwnershipChain(module_year_id=3), mutating=True).outcome is Outcome.UNAUTHORIZED


@pytest.mark.parametrize("missing", ["Module", "Subject", "Lecture", "Link"])
def test_missing_chain_link_is_not_found(missing):
    decision = authorize(student(1), OwnershipChain.broken(missing))
    assert decision.outcome is Outcome.NOT_FOUND
    assert decision.reason == f"{missing} doesn't exist."


def test_chain_without_module_year_is_not_found():
    decision = check_ownership(admin(1), OwnershipChain(module_year_id=None))
    assert decision.outcome is Outcome.NOT_FOUND


def test_role_is_checked_before_chain_resolution():
    # a student deleting something that does not exist is told "unauthorized"
    decision = authorize(student(1), OwnershipChain.broken("Lecture"), mutating=True)
    assert decision.outcome is Outcome.UNAUTHORIZED


def test_anonymous_and_unassigned_actors_are_rejected():
    assert authorize(None, OwnershipChain(module_year_id=1)).outcome is Outcome.UNAUTHORIZED
    assert check_role(None, mutating=False).outcome is Outcome.UNAUTHORIZED
    assert authorize(student(None), OwnershipChain(module_year_id=1)).outcome is Outcome.UNAUTHORIZED


def test_check_role_allows_reads_for_any_actor():
    assert check_role(student(1), mutating=False).allowed
    assert not check_role(student(1), mutating=True).allowed
    assert check_role(admin(None), mutating=True).allowed


def test_enforce_raises_matching_errors():
    with pytest.raises(errors.NotFound):
        authorize(student(1), OwnershipChain.broken("Lecture")).enforce()
    with pytest.raises(errors.Unauthorized):
        authorize(student(1), OwnershipChain(module_year_id=2)).enforce()
    decision = authorize(student(1), OwnershipChain(module_year_id=1))
    assert decision.enforce() is decision


def test_actor_from_user():
    user = User(id=5, username="u", password_hash="x", role=UserRole.ADMIN, year_id=3)
    actor = Actor.from_user(user)
    assert actor == Actor(id=5, role=UserRole.ADMIN, year_id=3)
    assert actor.is_admin
    assert Actor.from_user(None) is None
