#!/usr/bin/env python3
"""Script para cargar los eventos de ejemplo y, opcionalmente, marcar un perfil como admin"""
import argparse
import asyncio
import os
import sys

# Agregar directorio raíz al path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.database import connection
from shared.database.seed import seed_sample_events
from services.profiles.services.profile_service import ProfileService


async def main(force: bool, admin_id: str = None):
    await connection.init_db()
    try:
        async with connection.async_session_maker() as db:
            inserted = await seed_sample_events(db, force=force)
            print(f"Eventos insertados: {inserted}")

            if admin_id:
                profile = await ProfileService().ensure_profile(db, admin_id)
                profile.is_admin = True
                await db.commit()
                print(f"Perfil {profile.id} marcado como admin")
    finally:
        await connection.close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Cargar eventos de ejemplo")
    parser.add_argument("--force", action="store_true", help="Insertar aunque ya existan eventos")
    parser.add_argument("--admin-id", help="ID (auth.users.id) del perfil a marcar como admin")
    args = parser.parse_args()

    asyncio.run(main(args.force, args.admin_id))
