import pytest

from calculator_server.core import users
from calculator_server.core.errors import DuplicateIdentity, InvalidCredentials, NotFound
from calculator_server.core.security import verify_password
from calculator_server.models import Calculation, User


def make_user(db, username="alice", email="alice@x.com", password="Passw0rd", **kwargs):
    return users.create_user(db, username=username, email=email, password=password, **kwargs)


def test_create_user_hashes_password_and_hides_it(db):
    user = make_user(db, first_name="Alice")

    assert user.id is not None
    assert user.hashed_password != "Passw0rd"
    assert verify_password("Passw0rd", user.hashed_password)
    assert user.is_active is True
    assert user.last_login is None

    public = users.public_user(user)
    assert public["username"] == "alice"
    assert public["firstName"] == "Alice"
    assert "hashed_password" not in public
    assert "password" not in public
    assert public["createdAt"].endswith("+00:00")


def test_duplicate_username_is_rejected(db):
    make_user(db)
    with pytest.raises(DuplicateIdentity) as exc_info:
        make_user(db, email="other@x.com")
    assert exc_info.value.field == "username"


def test_duplicate_email_is_rejected_case_insensitively(db):
    make_user(db)
    with pytest.raises(DuplicateIdentity) as exc_info:
        make_user(db, username="alice2", email="ALICE@x.com")
    assert exc_info.value.field == "email"


def test_unique_constraint_backs_up_the_fast_path(db, monkeypatch):
    make_user(db)
    original = users._duplicate_field
    calls = []

    def skip_first_check(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return None
        return original(*args, **kwargs)

    monkeypatch.setattr(users, "_duplicate_field", skip_first_check)

    with pytest.raises(DuplicateIdentity) as exc_info:
        make_user(db, username="alice", email="fresh@x.com")
    assert exc_info.value.field == "username"
    assert db.query(User).count() == 1


def test_find_by_login_identifier(db):
    user = make_user(db)

    assert users.find_by_login_identifier(db, "alice").id == user.id
    assert users.find_by_login_identifier(db, "alice@x.com").id == user.id
    assert users.find_by_login_identifier(db, "bob") is None

    user.is_active = False
    db.commit()
    assert users.find_by_login_identifier(db, "alice") is None


def test_get_user(db):
    user = make_user(db)
    assert users.get_user(db, user.id).username == "alice"
    assert users.get_user(db, user.id + 100) is None


def test_update_profile_applies_only_supplied_fields(db):
    user = make_user(db, first_name="Alice", last_name="Liddell")

    updated = users.update_profile(db, user.id, last_name="Smith")
    assert updated.first_name == "Alice"
    assert updated.last_name == "Smith"
    assert updated.email == "alice@x.com"

    updated = users.update_profile(db, user.id, email="New@X.com")
    assert updated.email == "new@x.com"


def test_update_profile_email_collision(db):
    make_user(db)
    bob = make_user(db, username="bob", email="bob@x.com")

    with pytest.raises(DuplicateIdentity) as exc_info:
        users.update_profile(db, bob.id, email="alice@x.com")
    assert exc_info.value.field == "email"

    # Re-submitting your own email is not a collision
    assert users.update_profile(db, bob.id, email="bob@x.com").email == "bob@x.com"


def test_update_profile_unknown_user(db):
    with pytest.raises(NotFound):
        users.update_profile(db, 999, first_name="Nobody")


def test_set_password_only_changes_hash(db):
    user = make_user(db, first_name="Alice")
    old_hash = user.hashed_password

    users.set_password(db, user.id, "N3wPassword")
    db.refresh(user)

    assert user.hashed_password != old_hash
    assert verify_password("N3wPassword", user.hashed_password)
    assert user.first_name == "Alice"
    assert user.email == "alice@x.com"


def test_touch_last_login(db):
    user = make_user(db)
    users.touch_last_login(db, user.id)
    db.refresh(user)
    assert user.last_login is not None


def test_authenticate_user_failures_are_indistinguishable(db):
    make_user(db)

    with pytest.raises(InvalidCredentials) as wrong_password:
        users.authenticate_user(db, "alice", "Wrong0ne")
    with pytest.raises(InvalidCredentials) as unknown_user:
        users.authenticate_user(db, "nobody", "Passw0rd")

    assert wrong_password.value.message == unknown_user.value.message


def test_authenticate_user_touches_last_login(db):
    make_user(db)
    user = users.authenticate_user(db, "alice@x.com", "Passw0rd")
    assert user.last_login is not None


def test_change_password(db):
    user = make_user(db)

    with pytest.raises(InvalidCredentials):
        users.change_password(db, user.id, "Wrong0ne", "N3wPassword")

    users.change_password(db, user.id, "Passw0rd", "N3wPassword")
    with pytest.raises(InvalidCredentials):
        users.authenticate_user(db, "alice", "Passw0rd")
    assert users.authenticate_user(db, "alice", "N3wPassword").id == user.id


def test_removing_a_user_removes_their_history(db):
    user = make_user(db)
    db.add(Calculation(user_id=user.id, operation="addition", operands={"a": 1, "b": 2}, result=3))
    db.commit()

    db.delete(user)
    db.commit()
    assert db.query(Calculation).count() == 0
