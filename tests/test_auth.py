"""인증 API 테스트 — 회원가입, 로그인, 토큰 갱신, 로그아웃, /me 엔드포인트.

Auth API tests — Registration, login, token refresh, logout, and /me
endpoints, including replay detection and strict edge cases.
"""

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import delete
from sqlalchemy.exc import OperationalError

from auth_core.models.user import User
from auth_core.repositories.token_repository import refresh_token_repository
from auth_core.services.auth_service import auth_service
from auth_core.utils.jwt import create_access_token, hash_refresh_secret
from tests.conftest import USER_EMAIL, USER_PASSWORD, auth_header, make_refresh_record

AUTH = "/api/v1/auth"


async def _login(client: AsyncClient, email: str = USER_EMAIL, password: str = USER_PASSWORD) -> dict:
    res = await client.post(f"{AUTH}/login", json={"email": email, "password": password})
    assert res.status_code == 200
    return res.json()


# ===== Register =====

class TestRegister:
    """회원가입 테스트."""

    async def test_register_success(self, client: AsyncClient):
        """회원가입 성공 — 토큰 쌍과 사용자 정보 반환."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "a@x.com",
            "password": "longpassword1",
            "fullName": "Ann",
        })
        assert res.status_code == 201
        data = res.json()
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["tokenType"] == "bearer"
        assert data["user"]["email"] == "a@x.com"
        assert data["user"]["fullName"] == "Ann"
        assert data["user"]["timezone"] == "UTC"
        assert data["user"]["accountType"] == "INDIVIDUAL"
        assert data["user"]["subscriptionTier"] == "FREE"
        assert data["user"]["emailVerified"] is False

    async def test_register_never_returns_password_hash(self, client: AsyncClient):
        """응답에 비밀번호 해시가 포함되지 않음."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "b@x.com",
            "password": "longpassword1",
            "fullName": "Bob",
            "timezone": "Asia/Seoul",
        })
        assert res.status_code == 201
        user = res.json()["user"]
        assert "passwordHash" not in user
        assert "password_hash" not in user
        assert user["timezone"] == "Asia/Seoul"

    async def test_register_normalizes_email(self, client: AsyncClient):
        """이메일은 소문자/공백 제거 후 저장."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "  Mixed@Example.COM ",
            "password": "longpassword1",
            "fullName": "Mixed Case",
        })
        assert res.status_code == 201
        assert res.json()["user"]["email"] == "mixed@example.com"

        await _login(client, "mixed@example.com", "longpassword1")

    async def test_register_duplicate_email(self, client: AsyncClient, user):
        """중복 이메일로 가입 시 409."""
        res = await client.post(f"{AUTH}/register", json={
            "email": USER_EMAIL.upper(),
            "password": "anotherpassword",
            "fullName": "Ann Again",
        })
        assert res.status_code == 409
        assert res.json()["code"] == "EMAIL_EXISTS"

    async def test_register_short_password(self, client: AsyncClient):
        """8자 미만 비밀번호는 400."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "c@x.com",
            "password": "short",
            "fullName": "Carl",
        })
        assert res.status_code == 400
        assert res.json()["code"] == "VALIDATION_ERROR"

    async def test_register_password_over_bcrypt_limit(self, client: AsyncClient):
        """72바이트 초과 비밀번호는 400."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "d@x.com",
            "password": "가" * 30,  # 30자, 90바이트
            "fullName": "Dana",
        })
        assert res.status_code == 400

    async def test_register_invalid_email(self, client: AsyncClient):
        """잘못된 이메일 형식은 400."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "not-an-email",
            "password": "longpassword1",
            "fullName": "Eve",
        })
        assert res.status_code == 400

    async def test_register_validation_error_does_not_echo_password(self, client: AsyncClient):
        """검증 오류 응답에 입력값(비밀번호)이 노출되지 않음."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "f@x.com",
            "password": "Zq7#",
            "fullName": "F",
        })
        assert res.status_code == 400
        assert "Zq7#" not in res.text

    async def test_register_password_with_nul(self, client: AsyncClient):
        """NUL 문자가 포함된 비밀번호는 400 — bcrypt가 NUL 이후를 무시하므로."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "nul@x.com",
            "password": "longpass\x00word",
            "fullName": "Nul Byte",
        })
        assert res.status_code == 400
        assert res.json()["code"] == "VALIDATION_ERROR"

    async def test_register_then_login(self, client: AsyncClient):
        """가입한 자격 증명으로 즉시 로그인 가능."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "g@x.com",
            "password": "longpassword1",
            "fullName": "Gina",
        })
        assert res.status_code == 201

        data = await _login(client, "g@x.com", "longpassword1")
        assert data["accessToken"]
        assert data["refreshToken"]


# ===== Login =====

class TestLogin:
    """로그인 테스트."""

    async def test_login_success(self, client: AsyncClient, user):
        """로그인 성공."""
        data = await _login(client)
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["tokenType"] == "bearer"
        assert data["user"]["id"] == str(user.id)

    async def test_login_wrong_password(self, client: AsyncClient, user):
        """잘못된 비밀번호로 로그인 실패."""
        res = await client.post(f"{AUTH}/login", json={
            "email": USER_EMAIL,
            "password": "wrong_password",
        })
        assert res.status_code == 401
        assert res.json()["code"] == "INVALID_CREDENTIALS"

    async def test_login_unknown_email_is_indistinguishable(self, client: AsyncClient, user):
        """존재하지 않는 이메일과 틀린 비밀번호의 응답이 동일."""
        wrong_pw = await client.post(f"{AUTH}/login", json={
            "email": USER_EMAIL,
            "password": "wrong_password",
        })
        no_user = await client.post(f"{AUTH}/login", json={
            "email": "nobody@example.com",
            "password": "wrong_password",
        })
        assert no_user.status_code == wrong_pw.status_code == 401
        assert no_user.json() == wrong_pw.json()

    async def test_login_rejects_nul_suffix(self, client: AsyncClient, user):
        """NUL 뒤에 임의 문자를 붙인 비밀번호로 로그인 불가."""
        res = await client.post(f"{AUTH}/login", json={
            "email": USER_EMAIL,
            "password": USER_PASSWORD + "\x00anything",
        })
        assert res.status_code == 401

    async def test_each_login_gets_own_refresh_token(self, client: AsyncClient, user):
        """로그인 응답의 각 세션은 별도 리프레시 토큰을 가짐."""
        first = await _login(client)
        second = await _login(client)
        assert first["refreshToken"] != second["refreshToken"]

    async def test_login_records_device_info(self, client: AsyncClient, db, user):
        """로그인 시 기기 정보가 토큰 레코드에 기록됨."""
        res = await client.post(
            f"{AUTH}/login",
            json={"email": USER_EMAIL, "password": USER_PASSWORD},
            headers={"User-Agent": "pytest-device/1.0"},
        )
        assert res.status_code == 200

        record = await refresh_token_repository.get_by_token_hash(
            db, hash_refresh_secret(res.json()["refreshToken"])
        )
        assert record is not None
        assert record.device_info == "pytest-device/1.0"
        assert record.ip_address is not None

    async def test_login_store_unavailable(self, client: AsyncClient, user, monkeypatch):
        """저장소 장애 시 503과 Retry-After 헤더."""
        async def _broken_login(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr(auth_service, "login", _broken_login)
        res = await client.post(f"{AUTH}/login", json={
            "email": USER_EMAIL,
            "password": USER_PASSWORD,
        })
        assert res.status_code == 503
        assert res.json()["code"] == "STORE_UNAVAILABLE"
        assert res.headers["retry-after"] == "1"


# ===== Token Refresh =====

class TestTokenRefresh:
    """토큰 갱신 테스트."""

    async def test_refresh_token_success(self, client: AsyncClient, user):
        """리프레시 토큰으로 새 토큰 발급 — 새 리프레시 토큰은 이전과 다름."""
        login = await _login(client)

        res = await client.post(f"{AUTH}/refresh", json={
            "refreshToken": login["refreshToken"],
        })
        assert res.status_code == 200
        data = res.json()
        assert data["accessToken"]
        assert data["refreshToken"] != login["refreshToken"]
        assert data["tokenType"] == "bearer"
        assert "user" not in data

    async def test_refresh_accepts_snake_case_body(self, client: AsyncClient, user):
        """snake_case 요청 본문도 허용."""
        login = await _login(client)
        res = await client.post(f"{AUTH}/refresh", json={
            "refresh_token": login["refreshToken"],
        })
        assert res.status_code == 200

    async def test_refresh_new_token_works(self, client: AsyncClient, user):
        """갱신된 액세스 토큰으로 /me 접근 가능, 새 리프레시 토큰도 재회전 가능."""
        login = await _login(client)
        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": login["refreshToken"]})
        assert res.status_code == 200
        rotated = res.json()

        me_res = await client.get(f"{AUTH}/me", headers=auth_header(rotated["accessToken"]))
        assert me_res.status_code == 200
        assert me_res.json()["email"] == USER_EMAIL

        again = await client.post(f"{AUTH}/refresh", json={"refreshToken": rotated["refreshToken"]})
        assert again.status_code == 200

    async def test_refresh_with_unknown_token(self, client: AsyncClient, user):
        """존재하지 않는 리프레시 토큰으로 갱신 실패."""
        res = await client.post(f"{AUTH}/refresh", json={
            "refreshToken": "not-a-real-token",
        })
        assert res.status_code == 401
        assert res.json()["code"] == "INVALID_TOKEN"

    async def test_refresh_blank_token(self, client: AsyncClient):
        """빈 리프레시 토큰은 400."""
        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": "   "})
        assert res.status_code == 400

    async def test_reused_token_revokes_all_sessions(self, client: AsyncClient, db, user):
        """회전된 토큰 재사용 시 401, 사용자의 다른 모든 세션도 폐기."""
        first = await _login(client)
        second = await _login(client)

        rotated = await client.post(f"{AUTH}/refresh", json={"refreshToken": first["refreshToken"]})
        assert rotated.status_code == 200

        # 원래 토큰 재사용 — replay
        replay = await client.post(f"{AUTH}/refresh", json={"refreshToken": first["refreshToken"]})
        assert replay.status_code == 401
        assert replay.json()["code"] == "INVALID_TOKEN"

        # 다른 세션 토큰도 무효화됨
        other = await client.post(f"{AUTH}/refresh", json={"refreshToken": second["refreshToken"]})
        assert other.status_code == 401
        rotated_again = await client.post(
            f"{AUTH}/refresh", json={"refreshToken": rotated.json()["refreshToken"]}
        )
        assert rotated_again.status_code == 401

        assert await refresh_token_repository.count_active_for_user(
            db, user.id, datetime.now(timezone.utc)
        ) == 0

    async def test_replay_response_matches_unknown_token(self, client: AsyncClient, user):
        """재사용 탐지 응답은 알 수 없는 토큰 응답과 동일."""
        login = await _login(client)
        await client.post(f"{AUTH}/refresh", json={"refreshToken": login["refreshToken"]})

        replay = await client.post(f"{AUTH}/refresh", json={"refreshToken": login["refreshToken"]})
        unknown = await client.post(f"{AUTH}/refresh", json={"refreshToken": "unknown-secret"})
        assert replay.status_code == unknown.status_code == 401
        assert replay.json() == unknown.json()

    async def test_expired_token_rejected(self, client: AsyncClient, db, user):
        """만료된 토큰은 revoked_at이 없어도 401, 다른 세션도 폐기."""
        await make_refresh_record(db, user.id, "expired-secret", expires_in=timedelta(seconds=-1))
        active = await _login(client)

        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": "expired-secret"})
        assert res.status_code == 401

        other = await client.post(f"{AUTH}/refresh", json={"refreshToken": active["refreshToken"]})
        assert other.status_code == 401

    async def test_spec_example_flow(self, client: AsyncClient):
        """가입 → 로그인 → 갱신 → 원래 토큰 재사용 실패."""
        reg = await client.post(f"{AUTH}/register", json={
            "email": "a@x.com",
            "password": "longpassword1",
            "fullName": "Ann",
        })
        assert reg.status_code == 201

        login = await _login(client, "a@x.com", "longpassword1")
        refresh = login["refreshToken"]

        res = await client.post(f"{AUTH}/refresh", json={"refreshToken": refresh})
        assert res.status_code == 200
        assert res.json()["refreshToken"] != refresh

        again = await client.post(f"{AUTH}/refresh", json={"refreshToken": refresh})
        assert again.status_code == 401


# ===== Logout =====

class TestLogout:
    """로그아웃 테스트."""

    async def test_logout_success(self, client: AsyncClient, user):
        """로그아웃 후 모든 리프레시 토큰 무효화."""
        first = await _login(client)
        second = await _login(client)

        res = await client.post(f"{AUTH}/logout", headers=auth_header(first["accessToken"]))
        assert res.status_code == 200
        assert res.content == b""

        # 로그아웃 후 리프레시 토큰 사용 불가
        for session in (first, second):
            res2 = await client.post(f"{AUTH}/refresh", json={"refreshToken": session["refreshToken"]})
            assert res2.status_code == 401

    async def test_logout_is_idempotent(self, client: AsyncClient, user):
        """로그아웃 두 번 호출해도 모두 성공."""
        login = await _login(client)
        headers = auth_header(login["accessToken"])

        assert (await client.post(f"{AUTH}/logout", headers=headers)).status_code == 200
        assert (await client.post(f"{AUTH}/logout", headers=headers)).status_code == 200

    async def test_logout_without_token(self, client: AsyncClient):
        """토큰 없이 로그아웃 시 401."""
        res = await client.post(f"{AUTH}/logout")
        assert res.status_code == 401


# ===== /me Endpoint =====

class TestGetMe:
    """현재 사용자 프로필 조회 테스트."""

    async def test_get_me_success(self, client: AsyncClient, user):
        """인증된 사용자 정보 조회 성공."""
        token = create_access_token(user.id, user.email)
        res = await client.get(f"{AUTH}/me", headers=auth_header(token))
        assert res.status_code == 200
        data = res.json()
        assert data["id"] == str(user.id)
        assert data["email"] == USER_EMAIL
        assert data["fullName"] == "Ann Example"
        assert "passwordHash" not in data

    async def test_get_me_no_token(self, client: AsyncClient):
        """토큰 없이 /me 접근 시 401."""
        res = await client.get(f"{AUTH}/me")
        assert res.status_code == 401
        assert res.headers["www-authenticate"] == "Bearer"

    async def test_get_me_invalid_token(self, client: AsyncClient):
        """유효하지 않은 토큰으로 /me 접근 시 401."""
        res = await client.get(f"{AUTH}/me", headers=auth_header("invalid.jwt.token"))
        assert res.status_code == 401

    async def test_get_me_with_refresh_token(self, client: AsyncClient, user):
        """리프레시 토큰을 액세스 토큰으로 사용 불가."""
        login = await _login(client)
        res = await client.get(f"{AUTH}/me", headers=auth_header(login["refreshToken"]))
        assert res.status_code == 401

    async def test_get_me_deleted_user(self, client: AsyncClient, db, user):
        """토큰 발급 후 사용자가 삭제되면 404."""
        token = create_access_token(user.id, user.email)
        await db.execute(delete(User).where(User.id == user.id))
        await db.commit()

        res = await client.get(f"{AUTH}/me", headers=auth_header(token))
        assert res.status_code == 404
        assert res.json()["code"] == "NOT_FOUND"


class TestHealth:
    async def test_health(self, client: AsyncClient):
        res = await client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "ok"}
