"""
Seed one demo request per approval route into DATABASE_URL.
Existing data is left unchanged. Run from the repository root with .env loaded.

Usage:
  python scripts/seed_demo.py
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from hrportal.core.logging import setup_logging
from hrportal.db.init_db import init_db
from hrportal.db.session import SessionLocal, init_models


def main():
    setup_logging()
    init_models()
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
