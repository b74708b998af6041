#!/usr/bin/env python3
# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Create admin user. Run: python -m ieca_server.scripts.create_admin"""

import asyncio
import getpass
import sys

from ieca_server.config import settings
from ieca_server.database import Database
from ieca_server.errors import Conflict
from ieca_server.models.user import ROLE_ADMIN
from ieca_server.services import users


async def main():
    database = Database.from_settings(settings)
    await database.create_all()
    name = input("Admin name: ").strip()
    email = input("Admin email: ").strip()
    password = getpass.getpass("Password: ")
    if not name or not email or not password:
        print("All fields required")
        sys.exit(1)
    if len(password) < 8:
        print("Password must be at least 8 characters")
        sys.exit(1)

    try:
        async with database.session_maker() as session:
            try:
                await users.create_user(session, email, name, password, role=ROLE_ADMIN)
            except Conflict:
                print("User already exists")
                sys.exit(1)
        print("Admin user created.")
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
