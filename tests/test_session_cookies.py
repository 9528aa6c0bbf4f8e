from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Response

from app.core.time import EPOCH
from app.domain.auth.models import CredentialKind, SessionCredential
from app.services import session_cookies
from app.services.token_service import issue_for_identity
from conftest import USER, cookie_attr, cookie_value, has_flag

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _creds(access_ttl: int, refresh_ttl: int):
    access = SessionCredential(CredentialKind.ACCESS, "acc-value", NOW + timedelta(seconds=access_ttl))
    refresh = SessionCredential(CredentialKind.REFRESH, "ref-value", NOW + timedelta(seconds=refresh_ttl))
    return access, refresh


def test_issue_max_age_matches_remaining_ttl():
    access, refresh = _creds(900, 86400)
    entries = session_cookies.issue(access, refresh, now=NOW)
    assert [e.name for e in entries] == ["accessToken", "refreshToken"]
    assert entries[0].max_age == 900
    assert entries[1].max_age == 86400
    assert [e.value for e in entries] == ["acc-value", "ref-value"]
    for e in entries:
        assert e.httponly and e.secure
        assert e.samesite == "strict"
        assert e.path == "/"
        assert not e.cleared


def test_issue_is_deterministic_for_same_instant():
    access, refresh = _creds(900, 86400)
    assert session_cookies.issue(access, refresh, now=NOW) == session_cookies.issue(access, refresh, now=NOW)


def test_issue_from_codec_output_uses_token_lifetimes():
    tokens = issue_for_identity(USER, now=NOW)
    access, refresh = session_cookies.issue(tokens.access, tokens.refresh, now=tokens.issued_at)
    assert access.max_age == tokens.expires_in
    assert refresh.max_age == int((tokens.refresh.expires_at - tokens.issued_at).total_seconds())


def test_issue_rejects_expired_credential():
    access, refresh = _creds(-1, 86400)
    with pytest.raises(ValueError):
        session_cookies.issue(access, refresh, now=NOW)


def test_clear_produces_two_cleared_entries():
    entries = session_cookies.clear()
    assert [e.name for e in entries] == ["accessToken", "refreshToken"]
    for e in entries:
        assert e.cleared
        assert e.value == ""
        assert e.max_age == 0
        assert e.expires == EPOCH


def test_clear_is_idempotent():
    assert session_cookies.clear() == session_cookies.clear()


def test_apply_writes_set_cookie_headers_for_clear():
    response = session_cookies.apply(Response(), session_cookies.clear())
    raw = [v.decode("latin-1") for k, v in response.raw_headers if k == b"set-cookie"]
    assert len(raw) == 2
    for header in raw:
        assert cookie_value(header) == ""
        assert cookie_attr(header, "Max-Age") == "0"
        assert cookie_attr(header, "expires") == "Thu, 01 Jan 1970 00:00:00 GMT"
        assert cookie_attr(header, "Path") == "/"
        assert cookie_attr(header, "SameSite").lower() == "strict"
        assert has_flag(header, "HttpOnly")
        assert has_flag(header, "Secure")
