import pytest

from formreg.domain.errors import ErrorKind, OtpError
from formreg.services import otp as otp_service
from formreg.services.otp import OtpManager, OtpPolicy

pytestmark = pytest.mark.asyncio

EMAIL = "founder@startup.test"


async def test_issue_then_verify_succeeds_exactly_once(manager, notifier):
    await manager.issue(EMAIL)
    code = notifier.last_code(EMAIL)

    manager.verify(EMAIL, code)

    with pytest.raises(OtpError) as ei:
        manager.verify(EMAIL, code)
    assert ei.value.kind == ErrorKind.NOT_FOUND


async def test_verify_before_issue_is_not_found(manager):
    with pytest.raises(OtpError) as ei:
        manager.verify(EMAIL, "123456")
    assert ei.value.kind == ErrorKind.NOT_FOUND


async def test_verify_wrong_code_is_mismatch_and_keeps_code(manager, notifier, monkeypatch):
    monkeypatch.setattr(otp_service, "generate_code", lambda n: "111111")
    await manager.issue(EMAIL)

    with pytest.raises(OtpError) as ei:
        manager.verify(EMAIL, "222222")
    assert ei.value.kind == ErrorKind.MISMATCH

    # a failed attempt does not consume the code
    manager.verify(EMAIL, "111111")


async def test_leading_zeros_are_significant(manager, monkeypatch):
    monkeypatch.setattr(otp_service, "generate_code", lambda n: "042913")
    await manager.issue(EMAIL)

    with pytest.raises(OtpError) as ei:
        manager.verify(EMAIL, "42913")
    assert ei.value.kind == ErrorKind.MISMATCH
    manager.verify(EMAIL, "042913")


async def test_verify_after_ttl_is_expired_even_with_right_code(manager, notifier, clock):
    await manager.issue(EMAIL)
    code = notifier.last_code(EMAIL)

    clock.advance(601)
    with pytest.raises(OtpError) as ei:
        manager.verify(EMAIL, code)
    assert ei.value.kind == ErrorKind.EXPIRED


async def test_verify_at_expiry_boundary_is_accepted(manager, notifier, clock):
    await manager.issue(EMAIL)
    clock.advance(600)
    manager.verify(EMAIL, notifier.last_code(EMAIL))


async def test_consumed_code_is_not_found_not_expired(manager, clock, monkeypatch):
    # TTL=600, code issued at t=0, consumed at t=500, retried at t=700
    monkeypatch.setattr(otp_service, "generate_code", lambda n: "042913")
    await manager.issue(EMAIL)

    clock.advance(500)
    manager.verify(EMAIL, "042913")

    clock.advance(200)
    with pytest.raises(OtpError) as ei:
        manager.verify(EMAIL, "042913")
    assert ei.value.kind == ErrorKind.NOT_FOUND


async def test_new_issuance_replaces_previous_code(manager, clock, monkeypatch):
    codes = iter(["000001", "000002"])
    monkeypatch.setattr(otp_service, "generate_code", lambda n: next(codes))
    await manager.issue(EMAIL)
    clock.advance(60)
    await manager.issue(EMAIL)

    with pytest.raises(OtpError) as ei:
        manager.verify(EMAIL, "000001")
    assert ei.value.kind == ErrorKind.MISMATCH
    manager.verify(EMAIL, "000002")


@pytest.mark.parametrize("email,code", [("", "123456"), (EMAIL, ""), (EMAIL, None)])
async def test_verify_rejects_empty_input(manager, email, code):
    with pytest.raises(OtpError) as ei:
        manager.verify(email, code)
    assert ei.value.kind == ErrorKind.INVALID_INPUT


async def test_identities_are_independent(manager, notifier):
    await manager.issue("a@x.test")
    await manager.issue("b@x.test")

    with pytest.raises(OtpError):
        manager.verify("b@x.test", notifier.last_code("a@x.test") + "9")
    manager.verify("a@x.test", notifier.last_code("a@x.test"))
    manager.verify("b@x.test", notifier.last_code("b@x.test"))


async def test_notifier_failure_is_reported_and_attempt_counts(manager, notifier, clock):
    notifier.fail = True
    with pytest.raises(OtpError) as ei:
        await manager.issue(EMAIL)
    assert ei.value.kind == ErrorKind.NOTIFIER_FAILURE

    rec = manager.record_for(EMAIL)
    assert rec.issued_in_window == 1
    assert rec.last_issued_at == clock.now

    notifier.fail = False
    with pytest.raises(OtpError) as ei:
        await manager.issue(EMAIL)
    assert ei.value.kind == ErrorKind.TOO_SOON


async def test_code_length_follows_policy(notifier, clock):
    m = OtpManager(OtpPolicy(code_length=8), notifier, clock=clock)
    await m.issue(EMAIL)
    code = notifier.last_code(EMAIL)
    assert len(code) == 8 and code.isdigit()
