"""Simple migration runner for SQLite using provided SQL files in migrations/"""
from pathlib import Path
import sqlite3
from sqlalchemy.engine import make_url
from seva_kendra.config import settings
from seva_kendra.database import create_db_and_tables

BASE = Path(__file__).parent
MIGRATIONS = sorted((BASE / "migrations").glob("*.sql"))


def sqlite_path(database_url: str) -> Path:
    """Return the file behind a `sqlite:///` URL or fail for other backends."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database:
        raise SystemExit(f"run_migrations only supports file-backed SQLite, got {url.get_backend_name()}")
    return Path(url.database)


def run():
    """Create tables, then execute SQL migration files against the SQLite database.

    The function applies every `migrations/*.sql` file in lexical
    order. The seed files use `INSERT OR IGNORE`, so running it twice is
    harmless.
    """
    db_path = sqlite_path(settings.DATABASE_URL)
    print("Using database:", db_path)
    create_db_and_tables()
    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    for m in MIGRATIONS:
        print("Applying:", m.name)
        sql = m.read_text(encoding="utf-8")
        cur.executescript(sql)
    conn.commit()
    conn.close()
    print("Migrations applied.")

if __name__ == '__main__':
    run()
