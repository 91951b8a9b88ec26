"""Forgot-password flow: request, verify, reset."""

from datetime import datetime, timedelta, timezone

from fastapi import FastAPI
from httpx import AsyncClient

from salvambiente.password_reset.registry import InMemoryResetCodeRegistry


async def _request_code(client: AsyncClient, mock_email_service, email: str = "ana@example.com") -> str:
    response = await client.post("/api/solicitar-restablecimiento", json={"correo": email})
    assert response.status_code == 200
    return mock_email_service.send_template.call_args.kwargs["context"]["code"]


class TestRequestCode:
    async def test_sends_code_by_email(self, client: AsyncClient, make_user, mock_email_service):
        await make_user("ana")
        response = await client.post("/api/solicitar-restablecimiento", json={"correo": "ANA@example.com"})
        assert response.status_code == 200
        assert response.json() == {"message": "Se ha enviado un código de recuperación a tu correo."}
        kwargs = mock_email_service.send_template.call_args.kwargs
        assert kwargs["to"] == "ana@example.com"
        assert kwargs["template_name"] == "reset_code"
        assert len(kwargs["context"]["code"]) == 6

    async def test_unknown_email_is_404(self, client: AsyncClient, mock_email_service):
        response = await client.post("/api/solicitar-restablecimiento", json={"correo": "nadie@example.com"})
        assert response.status_code == 404
        assert response.json() == {"error": "Correo no encontrado"}
        mock_email_service.send_template.assert_not_called()

    async def test_delivery_failure_is_500(self, client: AsyncClient, make_user, mock_email_service):
        await make_user("ana")
        mock_email_service.send_template.return_value = False
        response = await client.post("/api/solicitar-restablecimiento", json={"correo": "ana@example.com"})
        assert response.status_code == 500
        assert response.json() == {"error": "Error en el servidor"}


class TestVerifyCode:
    async def test_valid_code(self, client: AsyncClient, make_user, mock_email_service):
        await make_user("ana")
        code = await _request_code(client, mock_email_service)
        response = await client.post("/api/verificar-codigo", json={"token": code})
        assert response.status_code == 200
        assert response.json() == {"valido": True}

    async def test_unknown_code(self, client: AsyncClient):
        response = await client.post("/api/verificar-codigo", json={"token": "000000"})
        assert response.status_code == 400
        assert response.json() == {"error": "Código inválido"}

    async def test_expired_code(self, app: FastAPI, client: AsyncClient, make_user, mock_email_service):
        now = [datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)]
        app.state.reset_codes = InMemoryResetCodeRegistry(timedelta(minutes=15), clock=lambda: now[0])
        await make_user("ana")
        code = await _request_code(client, mock_email_service)

        now[0] += timedelta(minutes=16)
        response = await client.post("/api/verificar-codigo", json={"token": code})
        assert response.status_code == 400
        assert response.json() == {"error": "Código expirado"}


class TestResetPassword:
    async def test_full_flow(self, client: AsyncClient, make_user, mock_email_service):
        await make_user("ana")
        code = await _request_code(client, mock_email_service)
        await client.post("/api/verificar-codigo", json={"token": code})

        response = await client.post("/api/restablecer-contra", json={"token": code, "nuevaContraseña": "nuevaclave1"})

        assert response.status_code == 200
        assert response.json() == {"message": "Contraseña restablecida correctamente"}
        login = await client.post("/api/login", json={"usuario": "ana", "contraseña": "nuevaclave1"})
        assert login.status_code == 200
        old = await client.post("/api/login", json={"usuario": "ana", "contraseña": "secreto123"})
        assert old.status_code == 401
        assert mock_email_service.send_template.call_args.kwargs["template_name"] == "password_changed"

    async def test_code_is_single_use(self, client: AsyncClient, make_user, mock_email_service):
        await make_user("ana")
        code = await _request_code(client, mock_email_service)
        await client.post("/api/verificar-codigo", json={"token": code})
        await client.post("/api/restablecer-contra", json={"token": code, "nuevaContraseña": "nuevaclave1"})

        response = await client.post("/api/restablecer-contra", json={"token": code, "nuevaContraseña": "otraclave22"})
        assert response.status_code == 400
        assert response.json() == {"error": "Código inválido"}

    async def test_unverified_code_rejected(self, client: AsyncClient, make_user, mock_email_service):
        await make_user("ana")
        code = await _request_code(client, mock_email_service)
        response = await client.post("/api/restablecer-contra", json={"token": code, "nuevaContraseña": "nuevaclave1"})
        assert response.status_code == 400
        assert response.json() == {"error": "Código no verificado"}

    async def test_short_password_keeps_code_usable(self, client: AsyncClient, make_user, mock_email_service):
        await make_user("ana")
        code = await _request_code(client, mock_email_service)
        await client.post("/api/verificar-codigo", json={"token": code})

        short = await client.post("/api/restablecer-contra", json={"token": code, "nuevaContraseña": "corta"})
        assert short.status_code == 400
        assert short.json() == {"error": "La nueva contraseña debe tener al menos 8 caracteres"}

        retry = await client.post("/api/restablecer-contra", json={"token": code, "nuevaContraseña": "suficiente"})
        assert retry.status_code == 200
