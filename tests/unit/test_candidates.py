import pytest

from services import candidates
from services.errors import NotFoundError, ValidationFailedError
from services.sessions import start_session


def test_create_and_list():
    created = candidates.create_candidate(first_name=" Grace ", last_name="Hopper", email="grace@example.com")
    candidates.create_candidate(first_name="Hr", last_name="Person", email="hr@example.com", role="HR")

    assert created.full_name == "Grace Hopper"
    assert candidates.get_candidate(created.id).email == "grace@example.com"
    assert [c.id for c in candidates.list_candidates(role="Candidate")] == [created.id]
    assert len(candidates.list_candidates()) == 2


def test_duplicate_email_is_case_insensitive():
    candidates.create_candidate(first_name="A", last_name="B", email="dup@example.com")

    with pytest.raises(ValidationFailedError) as excinfo:
        candidates.create_candidate(first_name="C", last_name="D", email="DUP@example.com")
    assert excinfo.value.message == "Email is already in use by another user."


@pytest.mark.parametrize("email,role", [("no-at-sign", "Candidate"), ("ok@example.com", "Janitor")])
def test_invalid_input(email, role):
    with pytest.raises(ValidationFailedError):
        candidates.create_candidate(first_name="A", last_name="B", email=email, role=role)


def test_unknown_candidate():
    with pytest.raises(NotFoundError):
        candidates.get_candidate("nobody")


def test_list_search_and_sort():
    ada = candidates.create_candidate(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    alan = candidates.create_candidate(first_name="Alan", last_name="Turing", email="alan@example.com")
    grace = candidates.create_candidate(first_name="Grace", last_name="Hopper", email="grace@example.com")

    assert [c.id for c in candidates.list_candidates()] == [ada.id, alan.id, grace.id]
    assert [c.id for c in candidates.list_candidates(sort="name_desc")] == [grace.id, alan.id, ada.id]
    assert [c.id for c in candidates.list_candidates(search="hop")] == [grace.id]
    assert [c.id for c in candidates.list_candidates(search="Alan Tur")] == [alan.id]
    assert [c.id for c in candidates.list_candidates(search="  ")] == [ada.id, alan.id, grace.id]
    with pytest.raises(ValidationFailedError):
        candidates.list_candidates(sort="newest")


def test_update_candidate():
    user = candidates.create_candidate(first_name="Ada", last_name="L", email="ada@example.com")
    candidates.create_candidate(first_name="Bo", last_name="Lee", email="bo@example.com")

    updated = candidates.update_candidate(user.id, first_name=" Ada ", last_name="Lovelace", email="ADA@example.com")

    assert (updated.full_name, updated.email) == ("Ada Lovelace", "ADA@example.com")
    with pytest.raises(ValidationFailedError) as excinfo:
        candidates.update_candidate(user.id, first_name="Ada", last_name="L", email="bo@example.com")
    assert excinfo.value.message == "Email is already in use by another user."
    with pytest.raises(NotFoundError) as excinfo:
        candidates.update_candidate("nobody", first_name="X", last_name="Y", email="x@example.com")
    assert excinfo.value.message == "User to update not found."


def test_admin_can_only_be_edited_by_themselves():
    admin = candidates.create_candidate(first_name="Root", last_name="Admin", email="root@example.com", role="Admin")
    other = candidates.create_candidate(first_name="Hr", last_name="Staff", email="hr@example.com", role="HR")

    with pytest.raises(ValidationFailedError) as excinfo:
        candidates.update_candidate(
            admin.id, first_name="R", last_name="A", email="root@example.com", acting_user_id=other.id
        )
    assert excinfo.value.message == "You cannot modify another admin user."

    edited = candidates.update_candidate(
        admin.id, first_name="Rooted", last_name="Admin", email="root@example.com", acting_user_id=admin.id
    )
    assert edited.first_name == "Rooted"


def test_assign_role():
    admin = candidates.create_candidate(first_name="Root", last_name="Admin", email="root@example.com", role="Admin")
    user = candidates.create_candidate(first_name="Bo", last_name="Lee", email="bo@example.com")

    assert candidates.assign_role(user.id, "HR").role == "HR"
    with pytest.raises(ValidationFailedError) as excinfo:
        candidates.assign_role(user.id, "Owner")
    assert excinfo.value.message == "Invalid role specified."
    with pytest.raises(ValidationFailedError) as excinfo:
        candidates.assign_role(admin.id, "Candidate", acting_user_id=user.id)
    assert excinfo.value.message == "Cannot change role of another administrator."
    assert candidates.assign_role(admin.id, "HR", acting_user_id=admin.id).role == "HR"
    with pytest.raises(NotFoundError):
        candidates.assign_role("nobody", "HR")


def test_delete_candidate():
    spare = candidates.create_candidate(first_name="Spare", last_name="User", email="spare@example.com")
    candidates.delete_candidate(spare.id)

    with pytest.raises(NotFoundError):
        candidates.get_candidate(spare.id)
    with pytest.raises(NotFoundError):
        candidates.delete_candidate(spare.id)


def test_delete_candidate_with_sessions_is_refused(make_candidate, make_position):
    make_candidate()
    start_session("c1", make_position(), mock=True)

    with pytest.raises(ValidationFailedError) as excinfo:
        candidates.delete_candidate("c1")

    assert excinfo.value.message.startswith("Cannot delete user because they have related records")
    assert candidates.get_candidate("c1").id == "c1"
