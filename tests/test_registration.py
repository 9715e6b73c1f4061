import pytest

from app.core.auth_utils import verify_password
from app.core.email_sender import Delivery
from app.core.errors import Conflict, InvalidOtp, UserNotFound
from app.db.models import User, UserStatus
from app.services import registration
from conftest import RecordingEmailSender


def _register(db, otp_service, email_sender, **overrides):
    fields = {
        "username": "ravi",
        "email": "ravi@example.com",
        "password": "s3cret-pass",
        "full_name": "Ravi Kumar",
        "phone": "9876543210",
        "role": "builder",
    }
    fields.update(overrides)
    return registration.register_user(db, otp_service, email_sender, **fields)


def _last_code(email_sender):
    body = email_sender.sent[-1]["body"]
    return body.split("is: ")[1][:6]


def test_register_creates_pending_user_and_sends_otp(db_session, otp_service, email_sender):
    delivery = _register(db_session, otp_service, email_sender)

    assert delivery is Delivery.DELIVERED
    user = db_session.query(User).one()
    assert user.status == UserStatus.PENDING_VERIFICATION.value
    assert user.password_hash != "s3cret-pass"
    assert verify_password("s3cret-pass", user.password_hash)
    assert email_sender.sent[0]["to"] == "ravi@example.com"
    assert otp_service.has_active("ravi@example.com")


def test_register_normalizes_email(db_session, otp_service, email_sender):
    _register(db_session, otp_service, email_sender, email="  Ravi@Example.COM ")

    assert db_session.query(User).one().email == "ravi@example.com"


def test_duplicate_email_is_conflict_and_creates_nothing(db_session, otp_service, email_sender):
    _register(db_session, otp_service, email_sender)

    with pytest.raises(Conflict) as exc:
        _register(db_session, otp_service, email_sender, username="someone-else", email="RAVI@example.com")

    assert exc.value.message == "Email already exists"
    assert db_session.query(User).count() == 1


def test_duplicate_username_is_conflict(db_session, otp_service, email_sender):
    _register(db_session, otp_service, email_sender)

    with pytest.raises(Conflict) as exc:
        _register(db_session, otp_service, email_sender, email="other@example.com")

    assert exc.value.message == "Username already exists"
    assert db_session.query(User).count() == 1


def test_unique_violation_on_commit_is_conflict(db_session, otp_service, email_sender, monkeypatch):
    # A concurrent registration can pass the pre-check and still lose at commit
    _register(db_session, otp_service, email_sender)
    monkeypatch.setattr(registration, "_user_by_email", lambda db, email: None)

    with pytest.raises(Conflict) as exc:
        _register(db_session, otp_service, email_sender, username="ravi-2")

    assert exc.value.message == "Email or username already exists"
    assert len(email_sender.sent) == 1
    assert db_session.query(User).count() == 1
    assert db_session.query(User).one().username == "ravi"


def test_email_failure_does_not_fail_registration(db_session, otp_service, caplog):
    failing = RecordingEmailSender(result=Delivery.FAILED)

    with caplog.at_level("WARNING", logger="app.services.registration"):
        delivery = _register(db_session, otp_service, failing)

    assert delivery is Delivery.FAILED
    assert db_session.query(User).count() == 1
    code = _last_code(failing)
    assert f"OTP for ravi@example.com is {code}" in caplog.text
    profile = registration.verify_user(db_session, otp_service, "ravi@example.com", code)
    assert profile["status"] == "active"


def test_wrong_code_never_activates(db_session, otp_service, email_sender):
    _register(db_session, otp_service, email_sender)
    code = _last_code(email_sender)
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(InvalidOtp):
        registration.verify_user(db_session, otp_service, "ravi@example.com", wrong)

    assert db_session.query(User).one().status == UserStatus.PENDING_VERIFICATION.value


def test_correct_code_activates_once(db_session, otp_service, email_sender):
    _register(db_session, otp_service, email_sender)
    code = _last_code(email_sender)

    profile = registration.verify_user(db_session, otp_service, "ravi@example.com", code)

    assert profile["status"] == "active"
    assert profile["username"] == "ravi"
    assert "password" not in profile
    assert "password_hash" not in profile
    with pytest.raises(InvalidOtp):
        registration.verify_user(db_session, otp_service, "ravi@example.com", code)


def test_expired_code_is_rejected(db_session, otp_service, email_sender, clock):
    _register(db_session, otp_service, email_sender)
    code = _last_code(email_sender)
    clock.advance(11 * 60)

    with pytest.raises(InvalidOtp):
        registration.verify_user(db_session, otp_service, "ravi@example.com", code)
    assert db_session.query(User).one().status == UserStatus.PENDING_VERIFICATION.value


def test_valid_code_without_user_is_not_found(db_session, otp_service):
    code = otp_service.issue("ghost@example.com")

    with pytest.raises(UserNotFound):
        registration.verify_user(db_session, otp_service, "ghost@example.com", code)


def test_resend_replaces_code(db_session, otp_service, email_sender, monkeypatch):
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(otp_service, "generate_code", lambda: next(codes))
    _register(db_session, otp_service, email_sender)
    first = _last_code(email_sender)

    registration.resend_otp(db_session, otp_service, email_sender, "ravi@example.com")
    second = _last_code(email_sender)

    assert len(email_sender.sent) == 2
    assert (first, second) == ("111111", "222222")
    with pytest.raises(InvalidOtp):
        registration.verify_user(db_session, otp_service, "ravi@example.com", first)
    registration.verify_user(db_session, otp_service, "ravi@example.com", second)


def test_resend_for_unknown_or_verified_user(db_session, otp_service, email_sender):
    with pytest.raises(UserNotFound):
        registration.resend_otp(db_session, otp_service, email_sender, "nobody@example.com")

    _register(db_session, otp_service, email_sender)
    registration.verify_user(db_session, otp_service, "ravi@example.com", _last_code(email_sender))

    with pytest.raises(Conflict):
        registration.resend_otp(db_session, otp_service, email_sender, "ravi@example.com")
