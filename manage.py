#!/usr/bin/env python
"""
Command-line entry point for the Storefront Platform.
"""

import os
import sys
from pathlib import Path


def main() -> None:
    # ===============================================================================
    # ENVIRONMENT (.env) 🔐
    # ===============================================================================
    env_path = Path(__file__).resolve().parent / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(env_path)
        print("✅ [Environment] Loaded .env file")

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Is it installed and is the virtual environment active?"
        ) from exc

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
