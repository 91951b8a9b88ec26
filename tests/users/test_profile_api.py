"""Profile read, rename and password change."""

from httpx import AsyncClient


class TestReadProfile:
    async def test_returns_own_profile(self, client: AsyncClient, make_user, auth_header):
        user, token = await make_user("ana")
        response = await client.get("/api/perfil", headers=auth_header(token))
        assert response.status_code == 200
        profile = response.json()["user"]
        assert profile["id"] == user.id
        assert profile["usuario"] == "ana"
        assert profile["correo"] == "ana@example.com"
        assert "fecha_creacion" in profile

    async def test_requires_token(self, client: AsyncClient):
        response = await client.get("/api/perfil")
        assert response.status_code == 401


class TestUpdateProfile:
    async def test_rename(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.put("/api/perfil", json={"usuario": "ana_maria"}, headers=auth_header(token))
        assert response.status_code == 200
        assert response.json()["user"]["usuario"] == "ana_maria"
        login = await client.post("/api/login", json={"usuario": "ana_maria", "contraseña": "secreto123"})
        assert login.status_code == 200

    async def test_taken_username(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        await make_user("bea")
        response = await client.put("/api/perfil", json={"usuario": "bea"}, headers=auth_header(token))
        assert response.status_code == 400
        assert response.json() == {"error": "El nombre de usuario ya está en uso"}

    async def test_keeping_same_name_is_allowed(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.put("/api/perfil", json={"usuario": "ana"}, headers=auth_header(token))
        assert response.status_code == 200


class TestChangePassword:
    async def test_change(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.put(
            "/api/cambiar-contra",
            json={"currentPassword": "secreto123", "newPassword": "nuevaclave1"},
            headers=auth_header(token),
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Contraseña actualizada exitosamente"}
        login = await client.post("/api/login", json={"usuario": "ana", "contraseña": "nuevaclave1"})
        assert login.status_code == 200

    async def test_wrong_current_password(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.put(
            "/api/cambiar-contra",
            json={"currentPassword": "incorrecta", "newPassword": "nuevaclave1"},
            headers=auth_header(token),
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Contraseña actual incorrecta"}

    async def test_short_new_password(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.put(
            "/api/cambiar-contra",
            json={"currentPassword": "secreto123", "newPassword": "corta"},
            headers=auth_header(token),
        )
        assert response.status_code == 400
        assert response.json() == {"error": "La nueva contraseña debe tener al menos 8 caracteres"}
