import os
import sys
from pathlib import Path

from sqlalchemy import create_engine

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.tailorbook.models import Base


def create_tables(*, database_url: str | None = None) -> list[str]:
    """
    Create any missing tables straight from the ORM metadata.
    Local development only; deployed databases are migrated with alembic.
    """
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///tailorbook.db").strip()
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        raise RuntimeError("init_db.py is for local databases; run scripts/release.py (alembic) in production.")

    engine = create_engine(db_url, future=True)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    return sorted(Base.metadata.tables)


def main() -> None:
    from dotenv import load_dotenv

    load_dotenv()
    tables = create_tables()
    print(f"Tables ready: {', '.join(tables)}")


if __name__ == "__main__":
    main()
