#!/usr/bin/env python3
"""
Setup Check Script

Run this to verify the database, the template registry and the DeepSeek API
are reachable with the current configuration.
Usage: python scripts/check_setup.py
"""
import sys
sys.path.insert(0, '.')

from app.core.config import get_settings
from app.db.postgres import test_postgres_connection
from app.services.deepseek_client import get_deepseek_client
from app.services.errors import RegistryCorrupted
from app.services.template_registry import get_template_registry


def main():
    settings = get_settings()
    print("=" * 50)
    print("PORTFOLIO TEMPLATE SERVICE - SETUP CHECK")
    print("=" * 50)

    # Database
    print("\n[1] Testing database...")
    print(f"    URL: {settings.sqlalchemy_url.split('@')[-1]}")
    if test_postgres_connection():
        print("    ✅ Database: CONNECTED")
    else:
        print("    ❌ Database: FAILED")

    # Template registry
    print("\n[2] Reading template registry...")
    print(f"    Path: {settings.registry_path}")
    try:
        templates = get_template_registry().list_all()
        active = sum(1 for t in templates if t.is_active)
        print(f"    ✅ Registry: {len(templates)} template(s), {active} active")
    except RegistryCorrupted as e:
        print(f"    ❌ Registry: {e.detail}")

    # DeepSeek (only if API key is set)
    print("\n[3] Testing DeepSeek API...")
    if settings.deepseek_api_key:
        print(f"    Base URL: {settings.deepseek_base_url}")
        if get_deepseek_client().test_connection():
            print("    ✅ DeepSeek: CONNECTED")
        else:
            print("    ❌ DeepSeek: FAILED")
    else:
        print("    ⚠️  DeepSeek: API key not configured (resume parsing disabled)")

    print("\n" + "=" * 50)
    print("Setup check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
