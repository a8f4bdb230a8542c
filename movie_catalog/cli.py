"""
Command-line interface for the movie catalog.

    python -m movie_catalog setup                 create missing tables
    python -m movie_catalog status                row counts per table
    python -m movie_catalog test                  TMDB and database connectivity
    python -m movie_catalog sync all|genres|movies [--max-pages N]
"""

import argparse
import sys
from typing import Callable, Dict, Iterable, Optional, Tuple

from .client import TMDBClient
from .config import Config
from .database import DatabaseManager
from .provider import MoviesProvider
from .sync import DatabaseSync

RULE_WIDTH = 60

# status() key -> label, in display order
STATUS_ROWS = (
    ("movies", "Movies"),
    ("genres", "Genres"),
    ("users", "Users"),
    ("ratings", "Ratings"),
    ("watchlist_entries", "Watchlist entries"),
)

ENV_HELP = """\
Set these in .env or the environment:
  TMDB_API_KEY=<TMDB v4 bearer token>
  JWT_SECRET=<secret>  JWT_REFRESH_SECRET=<secret>
  DATABASE_URL=<SQLAlchemy URL>  (or SQL_HOST, SQL_PORT, SQL_USER, SQL_PASS, SQL_DB)"""


def _title(text: str) -> None:
    print("=" * RULE_WIDTH)
    print(text.center(RULE_WIDTH))
    print("=" * RULE_WIDTH)


def _rows(rows: Iterable[Tuple[str, object]]) -> None:
    rows = list(rows)
    width = max((len(label) for label, _ in rows), default=0) + 2
    for label, value in rows:
        if isinstance(value, int) and not isinstance(value, bool):
            value = f"{value:,}"
        print(f"  {label:<{width}}{value}")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="movie_catalog",
        description="Manage the movie catalog database and sync movie data from TMDB",
    )
    commands = parser.add_subparsers(dest="command", metavar="command")

    commands.add_parser("setup", help="create missing tables")
    commands.add_parser("status", help="show row counts per table")
    commands.add_parser("test", help="check TMDB and database connectivity")

    sync = commands.add_parser("sync", help="copy genres and popular movies from TMDB")
    sync.add_argument("target", choices=["genres", "movies", "all"])
    sync.add_argument(
        "--max-pages",
        type=int,
        help="popular-movie pages to fetch (default: TMDB_MAX_PAGES)",
    )
    return parser


def cmd_setup(db: DatabaseManager) -> int:
    _title("Catalog setup")

    result = db.check_and_create_tables()
    _rows(
        (table, "exists" if table in result["existing"] else "created" if table in result["created"] else "MISSING")
        for table in DatabaseManager.REQUIRED_TABLES
    )
    print(f"\n{len(result['created'])} created, {len(result['existing'])} already present")

    if not result["all_present"]:
        print("Some tables could not be created")
        return 1
    return 0


def cmd_status(db: DatabaseManager) -> int:
    _title("Catalog status")

    status = db.get_status()
    _rows((label, status[key]) for key, label in STATUS_ROWS)

    if status["missing_tables"]:
        print(f"\nMissing tables: {', '.join(status['missing_tables'])}")
        print("Run 'python -m movie_catalog setup' to create them.")
    return 0


def cmd_test(db: DatabaseManager, client: TMDBClient) -> int:
    _title("Connection test")

    api_ok = client.test_connection()
    db_ok, db_error = db.test_connection()
    _rows([("TMDB API", "OK" if api_ok else "FAILED"), ("Database", "OK" if db_ok else "FAILED")])
    if db_error:
        print(f"\nDatabase error: {db_error}")

    return 0 if api_ok and db_ok else 1


def cmd_sync(sync: DatabaseSync, args) -> int:
    _title(f"Sync {args.target}")

    run: Dict[str, Callable] = {
        "genres": sync.sync_genres,
        "movies": sync.sync_movies,
        "all": sync.sync_all,
    }
    result = run[args.target]()

    print(result.message)
    if result.data:
        _rows(result.data.items())
    return 0 if result.success else 1


def main(args: Optional[list] = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)
    if not parsed.command:
        parser.print_help()
        return 0

    try:
        config = Config.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}\n\n{ENV_HELP}")
        return 1

    if getattr(parsed, "max_pages", None):
        config.max_pages = parsed.max_pages

    try:
        db = DatabaseManager(config)
        client = TMDBClient(config)
    except Exception as e:
        print(f"Error initializing: {e}")
        return 1

    commands: Dict[str, Callable[[], int]] = {
        "setup": lambda: cmd_setup(db),
        "status": lambda: cmd_status(db),
        "test": lambda: cmd_test(db, client),
        "sync": lambda: cmd_sync(
            DatabaseSync(MoviesProvider([client]), db, config, show_progress=True), parsed
        ),
    }

    try:
        return commands[parsed.command]()
    except KeyboardInterrupt:
        print("\nCancelled.")
        return 130
    except Exception as e:
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
