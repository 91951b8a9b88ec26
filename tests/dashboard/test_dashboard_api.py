"""Moderator/admin dashboard aggregates."""

import pytest
from httpx import AsyncClient

from salvambiente.auth.roles import Role
from salvambiente.time_utils import month_key, utcnow

ENDPOINTS = [
    "/api/dashboard/resumen",
    "/api/dashboard/usuarios/por-mes",
    "/api/dashboard/usuarios/por-rol",
    "/api/dashboard/huella/por-transporte",
    "/api/dashboard/huella/tendencia",
    "/api/dashboard/huella/energia-renovable",
    "/api/dashboard/juegos/estadisticas",
    "/api/dashboard/juegos/top-puntuaciones",
    "/api/dashboard/juegos/por-dia",
    "/api/dashboard/actividad/reciente",
]

FOOTPRINT = {
    "kilometros": 50,
    "transporte": "coche",
    "electricidad": 100,
    "energiaRenovable": "no",
    "reciclaje": [],
    "total_emisiones": 80,
}


class TestAccess:
    async def test_requires_token(self, client: AsyncClient):
        response = await client.get("/api/dashboard/resumen")
        assert response.status_code == 401

    async def test_plain_user_forbidden(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.get("/api/dashboard/resumen", headers=auth_header(token))
        assert response.status_code == 403
        data = response.json()
        assert data["rolRequerido"] == ["admin", "moderador"]
        assert data["tuRol"] == "usuario"

    @pytest.mark.parametrize("path", ENDPOINTS)
    async def test_moderator_allowed_everywhere(self, client: AsyncClient, make_user, auth_header, path):
        _, token = await make_user("mod", Role.MODERATOR)
        response = await client.get(path, headers=auth_header(token))
        assert response.status_code == 200

    async def test_admin_allowed(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("root", Role.ADMIN)
        response = await client.get("/api/dashboard/resumen", headers=auth_header(token))
        assert response.status_code == 200


class TestAggregates:
    async def test_summary_on_empty_activity(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("mod", Role.MODERATOR)
        data = (await client.get("/api/dashboard/resumen", headers=auth_header(token))).json()
        assert data["usuarios"]["total"] == 1
        assert data["huellaCarbono"] == {"total": 0, "promedioEmisiones": "0.00"}
        assert data["juegos"]["totalPartidas"] == 0
        assert data["juegos"]["topJugadores"] == []

    async def test_users_by_role_lists_every_role(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("mod", Role.MODERATOR)
        await make_user("ana")
        await make_user("bea")
        data = (await client.get("/api/dashboard/usuarios/por-rol", headers=auth_header(token))).json()
        assert {row["rol"]: row["cantidad"] for row in data} == {"admin": 0, "moderador": 1, "usuario": 2}

    async def test_registrations_this_month(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("mod", Role.MODERATOR)
        await make_user("ana")
        data = (await client.get("/api/dashboard/usuarios/por-mes", headers=auth_header(token))).json()
        now = utcnow()
        assert data == [{"mes": month_key(now.year, now.month), "cantidad": 2}]

    async def test_footprint_and_game_figures(self, client: AsyncClient, make_user, auth_header):
        _, mod = await make_user("mod", Role.MODERATOR)
        _, ana = await make_user("ana")
        await client.post("/api/guardar", json=FOOTPRINT, headers=auth_header(ana))
        await client.post(
            "/api/juego1/puntuacion",
            json={"puntuacion": 70, "tiempo_segundos": 40, "eficiencia": 90, "aciertos": 9, "total_residuos": 10},
            headers=auth_header(ana),
        )

        summary = (await client.get("/api/dashboard/resumen", headers=auth_header(mod))).json()
        assert summary["huellaCarbono"] == {"total": 1, "promedioEmisiones": "80.00"}
        assert summary["juegos"]["promedioPuntuacion"] == "70.00"
        assert summary["juegos"]["topJugadores"][0]["usuario"] == "ana"

        transport = (await client.get("/api/dashboard/huella/por-transporte", headers=auth_header(mod))).json()
        assert transport == [{"transporte": "coche", "cantidad": 1, "promedio_emisiones": 80.0}]

        games = (await client.get("/api/dashboard/juegos/estadisticas", headers=auth_header(mod))).json()
        assert games["total_partidas"] == 1
        assert games["puntuacion_maxima"] == 70

        activity = (await client.get("/api/dashboard/actividad/reciente", headers=auth_header(mod))).json()
        assert {"registro", "huella", "juego"} <= {item["tipo"] for item in activity}
