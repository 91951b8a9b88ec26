"""Admin user and role management."""

from httpx import AsyncClient
from sqlalchemy import select

from salvambiente.auth.roles import Role
from salvambiente.db.models import Role as RoleRow


async def _role_id(db_session, role: Role) -> int:
    return (await db_session.execute(select(RoleRow.id).where(RoleRow.name == role.value))).scalar_one()


class TestAccess:
    async def test_user_role_is_forbidden(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.get("/api/admin/usuarios", headers=auth_header(token))
        assert response.status_code == 403
        assert response.json() == {
            "error": "Acceso denegado. Se requieren permisos de administrador",
            "rolRequerido": ["admin"],
            "tuRol": "usuario",
        }

    async def test_moderator_is_forbidden(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("mod", Role.MODERATOR)
        response = await client.get("/api/admin/roles", headers=auth_header(token))
        assert response.status_code == 403


class TestListing:
    async def test_list_users_newest_first(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("root", Role.ADMIN)
        await make_user("ana")
        data = (await client.get("/api/admin/usuarios", headers=auth_header(token))).json()
        assert [user["usuario"] for user in data] == ["ana", "root"]
        assert data[1]["rol"] == "admin"

    async def test_list_roles(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("root", Role.ADMIN)
        data = (await client.get("/api/admin/roles", headers=auth_header(token))).json()
        assert sorted(role["nombre"] for role in data) == ["admin", "moderador", "usuario"]


class TestChangeRole:
    async def test_promote_user(self, client: AsyncClient, db_session, make_user, auth_header):
        _, token = await make_user("root", Role.ADMIN)
        ana, _ = await make_user("ana")
        moderator_id = await _role_id(db_session, Role.MODERATOR)

        response = await client.put(
            f"/api/admin/usuarios/{ana.id}/rol", json={"rol_id": moderator_id}, headers=auth_header(token)
        )

        assert response.status_code == 200
        assert response.json()["usuario"]["rol"] == "moderador"

    async def test_old_token_keeps_old_role(self, client: AsyncClient, db_session, make_user, auth_header):
        _, admin_token = await make_user("root", Role.ADMIN)
        ana, ana_token = await make_user("ana")
        moderator_id = await _role_id(db_session, Role.MODERATOR)
        await client.put(
            f"/api/admin/usuarios/{ana.id}/rol", json={"rol_id": moderator_id}, headers=auth_header(admin_token)
        )

        response = await client.get("/api/dashboard/resumen", headers=auth_header(ana_token))
        assert response.status_code == 403

    async def test_unknown_role(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("root", Role.ADMIN)
        ana, _ = await make_user("ana")
        response = await client.put(f"/api/admin/usuarios/{ana.id}/rol", json={"rol_id": 999}, headers=auth_header(token))
        assert response.status_code == 400
        assert response.json() == {"error": "Rol no válido"}

    async def test_unknown_user(self, client: AsyncClient, db_session, make_user, auth_header):
        _, token = await make_user("root", Role.ADMIN)
        user_role = await _role_id(db_session, Role.USER)
        response = await client.put("/api/admin/usuarios/999/rol", json={"rol_id": user_role}, headers=auth_header(token))
        assert response.status_code == 404

    async def test_admin_cannot_demote_self(self, client: AsyncClient, db_session, make_user, auth_header):
        root, token = await make_user("root", Role.ADMIN)
        user_role = await _role_id(db_session, Role.USER)
        response = await client.put(
            f"/api/admin/usuarios/{root.id}/rol", json={"rol_id": user_role}, headers=auth_header(token)
        )
        assert response.status_code == 400
        assert response.json() == {"error": "No puedes quitarte el rol de administrador a ti mismo"}


class TestDeleteUser:
    async def test_delete_user(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("root", Role.ADMIN)
        ana, _ = await make_user("ana")
        response = await client.delete(f"/api/admin/usuarios/{ana.id}", headers=auth_header(token))
        assert response.status_code == 200
        remaining = (await client.get("/api/admin/usuarios", headers=auth_header(token))).json()
        assert [user["usuario"] for user in remaining] == ["root"]

    async def test_cannot_delete_self(self, client: AsyncClient, make_user, auth_header):
        root, token = await make_user("root", Role.ADMIN)
        response = await client.delete(f"/api/admin/usuarios/{root.id}", headers=auth_header(token))
        assert response.status_code == 400
        assert response.json() == {"error": "No puedes eliminar tu propia cuenta"}

    async def test_missing_user(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("root", Role.ADMIN)
        response = await client.delete("/api/admin/usuarios/999", headers=auth_header(token))
        assert response.status_code == 404
