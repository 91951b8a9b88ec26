"""
Email templates for Salvambiente.

Inline CSS only, for email-client compatibility. Each template function
returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

GREEN = "#2E7D32"
GREEN_LIGHT = "#E8F5E9"
TEXT_PRIMARY = "#1B2A1F"
TEXT_SECONDARY = "#5F6B63"
BORDER = "#C8E6C9"


def _base_layout(content: str, app_name: str = "Salvambiente") -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="es">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {GREEN_LIGHT}; font-family: Arial, Helvetica, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%">
        <tr>
            <td align="center" style="padding: 32px 16px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="560" style="max-width: 560px; width: 100%; background-color: #FFFFFF; border: 1px solid {BORDER}; border-radius: 10px;">
                    <tr>
                        <td style="padding: 24px 28px; border-bottom: 1px solid {BORDER};">
                            <span style="font-size: 22px; font-weight: 700; color: {GREEN};">{app_name}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 28px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 16px 28px; color: {TEXT_SECONDARY}; font-size: 12px;">
                            Si no solicitaste este correo, puedes ignorarlo.
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _code_box(code: str) -> str:
    """Render the one-time code in a large monospace box."""
    return f"""\
<div style="margin: 24px auto; padding: 16px 24px; width: fit-content; border: 2px dashed {GREEN}; border-radius: 8px; font-family: 'Courier New', monospace; font-size: 30px; letter-spacing: 6px; color: {TEXT_PRIMARY};">
    {escape(code)}
</div>"""


def reset_code(code: str, ttl_minutes: int = 15) -> tuple[str, str, str]:
    """Six-digit code sent when a user asks to reset their password."""
    subject = "Código de recuperación de contraseña"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 20px; margin: 0 0 12px;">Recupera tu contraseña</h1>
<p style="color: {TEXT_PRIMARY}; font-size: 15px; line-height: 1.6;">
    Usa este código para restablecer tu contraseña:
</p>
{_code_box(code)}
<p style="color: {TEXT_SECONDARY}; font-size: 13px;">El código caduca en {ttl_minutes} minutos.</p>"""
    text_body = (
        "Recupera tu contraseña\n\n"
        f"Tu código de recuperación es: {code}\n"
        f"El código caduca en {ttl_minutes} minutos.\n"
    )
    return subject, _base_layout(content), text_body


def password_changed(username: str | None) -> tuple[str, str, str]:
    """Notice sent after a password was reset or changed."""
    greeting = f"Hola {escape(username)}," if username else "Hola,"
    subject = "Tu contraseña ha sido cambiada"
    content = f"""\
<p style="color: {TEXT_PRIMARY}; font-size: 15px; line-height: 1.6;">{greeting}</p>
<p style="color: {TEXT_PRIMARY}; font-size: 15px; line-height: 1.6;">
    La contraseña de tu cuenta se cambió correctamente. Si no fuiste tú, contacta con soporte.
</p>"""
    text_body = (
        f"{'Hola ' + username + ',' if username else 'Hola,'}\n\n"
        "La contraseña de tu cuenta se cambió correctamente. Si no fuiste tú, contacta con soporte.\n"
    )
    return subject, _base_layout(content), text_body
