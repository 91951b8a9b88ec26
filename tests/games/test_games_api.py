"""Score submission, leaderboards and latest results for both games."""

from httpx import AsyncClient
from sqlalchemy import func, select

from salvambiente.db.models import PlantQuizScore, WasteSortScore


def _waste_sort(score: int, seconds: int) -> dict:
    return {"puntuacion": score, "tiempo_segundos": seconds, "eficiencia": 80.5, "aciertos": 8, "total_residuos": 10}


def _plant_quiz(score: int, growth: int, play_time: int) -> dict:
    return {
        "puntuacion": score,
        "crecimiento_final": growth,
        "aciertos": 4,
        "total_preguntas": 5,
        "etapa_alcanzada": 3,
        "tiempo_juego": play_time,
    }


class TestWasteSort:
    async def test_submit_requires_token(self, client: AsyncClient):
        response = await client.post("/api/juego1/puntuacion", json=_waste_sort(100, 60))
        assert response.status_code == 401

    async def test_submit_returns_id(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.post("/api/juego1/puntuacion", json=_waste_sort(100, 60), headers=auth_header(token))
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert isinstance(data["id"], int)

    async def test_resubmission_keeps_one_row(self, client: AsyncClient, db_session, make_user, auth_header):
        user, token = await make_user("ana")
        await client.post("/api/juego1/puntuacion", json=_waste_sort(100, 60), headers=auth_header(token))
        await client.post("/api/juego1/puntuacion", json=_waste_sort(40, 90), headers=auth_header(token))

        count = (
            await db_session.execute(select(func.count(WasteSortScore.id)).where(WasteSortScore.user_id == user.id))
        ).scalar_one()
        assert count == 1
        latest = (await client.get(f"/api/juego1/usuario/{user.id}")).json()
        assert latest["puntuacion"] == 40

    async def test_leaderboard_ties_broken_by_time(self, client: AsyncClient, make_user, auth_header):
        for name, score, seconds in [("ana", 100, 90), ("bea", 100, 45), ("caro", 150, 200)]:
            _, token = await make_user(name)
            await client.post("/api/juego1/puntuacion", json=_waste_sort(score, seconds), headers=auth_header(token))

        board = (await client.get("/api/juego1/leaderboard")).json()

        assert [entry["usuario"] for entry in board] == ["caro", "bea", "ana"]

    async def test_leaderboard_capped_at_ten(self, client: AsyncClient, make_user, auth_header):
        for index in range(11):
            _, token = await make_user(f"jugador{index}")
            await client.post("/api/juego1/puntuacion", json=_waste_sort(index, 30), headers=auth_header(token))
        board = (await client.get("/api/juego1/leaderboard")).json()
        assert len(board) == 10
        assert board[0]["puntuacion"] == 10

    async def test_no_result_is_null(self, client: AsyncClient):
        response = await client.get("/api/juego1/usuario/999")
        assert response.status_code == 200
        assert response.json() is None

    async def test_negative_score_rejected(self, client: AsyncClient, make_user, auth_header):
        _, token = await make_user("ana")
        response = await client.post("/api/juego1/puntuacion", json=_waste_sort(-1, 30), headers=auth_header(token))
        assert response.status_code == 400


class TestPlantQuiz:
    async def test_leaderboard_order(self, client: AsyncClient, make_user, auth_header):
        rows = [("ana", 80, 50, 120), ("bea", 80, 70, 200), ("caro", 80, 70, 100), ("dani", 90, 10, 300)]
        for name, score, growth, play_time in rows:
            _, token = await make_user(name)
            await client.post(
                "/api/juego2/puntuacion", json=_plant_quiz(score, growth, play_time), headers=auth_header(token)
            )

        board = (await client.get("/api/juego2/leaderboard")).json()

        assert [entry["usuario"] for entry in board] == ["dani", "caro", "bea", "ana"]
        assert all("usuario_id" in entry for entry in board)

    async def test_resubmission_replaces(self, client: AsyncClient, db_session, make_user, auth_header):
        user, token = await make_user("ana")
        for score in (10, 20, 30):
            await client.post("/api/juego2/puntuacion", json=_plant_quiz(score, 5, 60), headers=auth_header(token))

        count = (
            await db_session.execute(select(func.count(PlantQuizScore.id)).where(PlantQuizScore.user_id == user.id))
        ).scalar_one()
        assert count == 1
        latest = (await client.get(f"/api/juego2/usuario/{user.id}")).json()
        assert latest["puntuacion"] == 30
        assert latest["etapa_alcanzada"] == 3
