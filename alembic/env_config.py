"""
Environment configuration for Alembic migrations.
Resolves the synchronous database URL the migrations run against.
"""

import os

from dotenv import load_dotenv

env = os.getenv("ENV", "local")
dotenv_file = f".env.{env}"

print(f"Alembic: Loading environment variables from {dotenv_file}")
load_dotenv(dotenv_file)


def get_database_url(environment: str = None) -> str:
    """
    Get the database URL for the specified environment.

    DATABASE_URL wins when set; async driver suffixes are stripped because
    migrations use a synchronous engine.

    Args:
        environment: 'local', 'staging', 'production', or None (uses current ENV).

    Returns:
        str: The database URL for the specified environment.
    """
    if not environment:
        environment = os.getenv("ENV", "local")

    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url.replace("+asyncpg", "").replace("+aiosqlite", "")

    db_user = os.getenv("DB_USER")
    db_password = os.getenv("DB_PASSWORD")
    db_host = os.getenv("DB_HOST")
    db_port = os.getenv("DB_PORT")
    db_name = os.getenv("DB_NAME")

    return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
