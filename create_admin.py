#!/usr/bin/env python3
"""
Standalone script to create an admin user for the Portfolio Tracker API,
or promote an existing account to admin.
Usage: python create_admin.py
"""

import asyncio
import getpass

from portfolio.core.database import AsyncSessionLocal, engine
from portfolio.crud.user import create_user, get_user_by_email, save_user
from portfolio.schemas.user import MIN_PASSWORD_LENGTH

async def create_admin():
    print("Creating admin user...")

    # Get user input
    email = input("Enter admin email: ").strip() or "admin@example.com"
    name = input("Enter full name (optional): ").strip() or "System Administrator"

    async with AsyncSessionLocal() as session:
        try:
            existing_user = await get_user_by_email(email, session)
            if existing_user:
                if existing_user.is_admin:
                    print(f"User with email {existing_user.email} is already an admin!")
                    return
                existing_user.role = "admin"
                await save_user(existing_user, session)
                print(f"✅ Promoted {existing_user.email} to admin")
                return

            password = getpass.getpass("Enter admin password: ")
            if len(password) < MIN_PASSWORD_LENGTH:
                print(f"❌ Password must be at least {MIN_PASSWORD_LENGTH} characters")
                return

            admin = await create_user(
                email=email,
                password=password,
                name=name,
                role="admin",
                db=session,
            )
            print("✅ Admin created successfully!")
            print(f"📧 Email: {admin.email}")
            print(f"👤 Name: {admin.name}")
            print(f"🔑 ID: {admin.id}")

        except Exception as e:
            print(f"❌ Error creating admin: {e}")
        finally:
            await engine.dispose()

if __name__ == "__main__":
    asyncio.run(create_admin())
