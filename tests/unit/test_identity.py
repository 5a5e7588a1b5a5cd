"""Unit tests for access-token verification and roster locks."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from collabhub.kernel.identity.tokens import TokenVerifier
from collabhub.kernel.membership import ProjectLocks

SECRET = "test-secret-key-for-testing-only"


def _token(claims, secret=SECRET):
    base = {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)}
    return jwt.encode({**base, **claims}, secret, algorithm="HS256")


@pytest.fixture
def verifier() -> TokenVerifier:
    return TokenVerifier(secret_key=SECRET, algorithm="HS256")


class TestTokenVerifier:
    """Tests for TokenVerifier."""

    def test_valid_access_token(self, verifier):
        user_id = uuid.uuid4()

        payload = verifier.verify_access_token(_token({"sub": str(user_id), "type": "access", "email": "a@example.com"}))

        assert payload is not None
        assert payload.user_id == user_id
        assert payload.email == "a@example.com"

    def test_refresh_token_is_rejected(self, verifier):
        assert verifier.verify_access_token(_token({"sub": str(uuid.uuid4()), "type": "refresh"})) is None

    def test_wrong_secret(self, verifier):
        token = _token({"sub": str(uuid.uuid4()), "type": "access"}, secret="another-secret")
        assert verifier.verify_access_token(token) is None

    def test_expired(self, verifier):
        token = _token({
            "sub": str(uuid.uuid4()),
            "type": "access",
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        })
        assert verifier.verify_access_token(token) is None

    def test_subject_must_be_a_uuid(self, verifier):
        assert verifier.verify_access_token(_token({"sub": "admin", "type": "access"})) is None

    def test_garbage(self, verifier):
        assert verifier.verify_access_token("not-a-token") is None


class TestProjectLocks:
    """Tests for ProjectLocks."""

    @pytest.mark.asyncio
    async def test_same_project_is_serialized(self):
        locks = ProjectLocks()
        project_id = uuid.uuid4()
        events = []

        async def writer(name):
            async with locks.hold(project_id):
                events.append(f"{name} in")
                await asyncio.sleep(0.01)
                events.append(f"{name} out")

        await asyncio.gather(writer("a"), writer("b"))

        assert events == ["a in", "a out", "b in", "b out"]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_different_projects_do_not_contend(self):
        locks = ProjectLocks()
        first, second = uuid.uuid4(), uuid.uuid4()

        async with locks.hold(first):
            assert locks.is_locked(first)
            assert not locks.is_locked(second)
            async with locks.hold(second):
                assert locks.is_locked(second)

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        locks = ProjectLocks()
        project_id = uuid.uuid4()

        with pytest.raises(RuntimeError):
            async with locks.hold(project_id):
                raise RuntimeError("boom")

        assert not locks.is_locked(project_id)
        assert len(locks) == 0
