"""Reference data seeded at startup: roles and support categories."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.roles import Role as RoleName
from salvambiente.db.models import Role, SupportCategory

logger = structlog.get_logger()

ROLE_SEED_DATA: list[dict] = [
    {"name": RoleName.ADMIN.value, "description": "Administrador de la plataforma"},
    {"name": RoleName.MODERATOR.value, "description": "Modera soporte y consulta estadísticas"},
    {"name": RoleName.USER.value, "description": "Usuario registrado"},
]

SUPPORT_CATEGORY_SEED_DATA: list[dict] = [
    {"name": "Cuenta", "description": "Acceso, registro y datos de perfil", "icon": "user"},
    {"name": "Huella de carbono", "description": "Dudas sobre el cálculo mensual", "icon": "leaf"},
    {"name": "Juegos", "description": "Problemas con los juegos y puntuaciones", "icon": "gamepad"},
    {"name": "Sugerencias", "description": "Ideas para mejorar la plataforma", "icon": "lightbulb"},
    {"name": "Otro", "description": "Cualquier otra consulta", "icon": "help-circle"},
]


async def seed_roles(db: AsyncSession) -> int:
    """Insert any missing role rows. Returns the number of roles created."""
    existing = set((await db.execute(select(Role.name))).scalars().all())
    created = 0
    for role_data in ROLE_SEED_DATA:
        if role_data["name"] in existing:
            continue
        db.add(Role(**role_data))
        created += 1
    await db.commit()
    logger.info("roles_seeded", created=created)
    return created


async def seed_support_categories(db: AsyncSession) -> int:
    """Insert any missing support categories. Returns the number created."""
    existing = set((await db.execute(select(SupportCategory.name))).scalars().all())
    created = 0
    for category_data in SUPPORT_CATEGORY_SEED_DATA:
        if category_data["name"] in existing:
            continue
        db.add(SupportCategory(active=True, **category_data))
        created += 1
    await db.commit()
    logger.info("support_categories_seeded", created=created)
    return created
