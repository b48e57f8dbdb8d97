"""HTTP tests for signup, login and token refresh."""
from datetime import datetime, timedelta, timezone

from app.core.tokens import TokenCodec
from conftest import ACCESS_SECRET, REFRESH_SECRET, signup


def error_message(response):
    return response.json()["error"]["message"]


class TestSignup:
    def test_creates_account(self, client):
        response = client.post("/signup", json={"email": "a@b.com", "password": "secret1"})

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User created successfully"
        assert body["user"]["email"] == "a@b.com"
        assert set(body["user"]) == {"id", "email"}
        assert body["accessToken"] and body["refreshToken"]

    def test_access_token_decodes_to_new_account(self, client):
        body = signup(client)

        claims = TokenCodec(ACCESS_SECRET, REFRESH_SECRET).verify_access_token(body["accessToken"])

        assert claims.user_id == body["user"]["id"]

    def test_duplicate_email(self, client):
        signup(client)

        response = client.post("/signup", json={"email": "a@b.com", "password": "another1"})

        assert response.status_code == 409
        assert error_message(response) == "User with this email already exists"

    def test_invalid_email(self, client):
        response = client.post("/signup", json={"email": "invalid-email", "password": "secret1"})

        assert response.status_code == 400
        assert error_message(response) == "Validation failed"

    def test_short_password(self, client):
        response = client.post("/signup", json={"email": "a@b.com", "password": "123"})

        assert response.status_code == 400
        assert "password" in response.json()["error"]["details"]

    def test_malformed_json(self, client):
        response = client.post("/signup", content=b"{not json",
                               headers={"Content-Type": "application/json"})

        assert response.status_code == 400


class TestLogin:
    def test_success(self, client, account):
        response = client.post("/login", json={"email": "a@b.com", "password": "secret1"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["user"] == account["user"]
        assert body["accessToken"] and body["refreshToken"]

    def test_wrong_password_matches_unknown_email(self, client, account):
        wrong_password = client.post("/login", json={"email": "a@b.com", "password": "wrong-pass"})
        unknown_email = client.post("/login", json={"email": "ghost@b.com", "password": "secret1"})

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert error_message(wrong_password) == error_message(unknown_email) == "Invalid email or password"
        assert wrong_password.headers["WWW-Authenticate"] == "Bearer"

    def test_missing_password(self, client):
        response = client.post("/login", json={"email": "a@b.com"})

        assert response.status_code == 400


class TestRefresh:
    def test_refresh(self, client, account):
        response = client.post("/token/refresh", json={"refreshToken": account["refreshToken"]})

        assert response.status_code == 200
        assert set(response.json()) == {"accessToken"}

    def test_refreshed_token_is_usable(self, client, account):
        new_token = client.post(
            "/token/refresh", json={"refreshToken": account["refreshToken"]}
        ).json()["accessToken"]

        response = client.get("/trades", headers={"Authorization": f"Bearer {new_token}"})

        assert response.status_code == 200

    def test_missing_token(self, client):
        for kwargs in ({"json": {}}, {}):
            response = client.post("/token/refresh", **kwargs)

            assert response.status_code == 401
            assert error_message(response) == "Refresh token required"

    def test_invalid_token(self, client):
        response = client.post("/token/refresh", json={"refreshToken": "invalid-token"})

        assert response.status_code == 401
        assert error_message(response) == "Invalid refresh token"

    def test_access_token_is_not_a_refresh_token(self, client, account):
        response = client.post("/token/refresh", json={"refreshToken": account["accessToken"]})

        assert response.status_code == 401
        assert error_message(response) == "Invalid refresh token"

    def test_expired_token(self, client, account):
        stale = TokenCodec(ACCESS_SECRET, REFRESH_SECRET).issue_refresh_token(
            account["user"]["id"], issued_at=datetime.now(timezone.utc) - timedelta(days=8)
        )

        response = client.post("/token/refresh", json={"refreshToken": stale})

        assert response.status_code == 401
        assert error_message(response) == "Refresh token expired"

    def test_unknown_account(self, client):
        orphan = TokenCodec(ACCESS_SECRET, REFRESH_SECRET).issue_refresh_token(424242)

        response = client.post("/token/refresh", json={"refreshToken": orphan})

        assert response.status_code == 401
        assert error_message(response) == "User not found"
