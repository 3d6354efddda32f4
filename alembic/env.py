"""Alembic environment: migrates the apps, promotional_codes and testers tables online."""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from env_config import get_database_url

from beta_signup.db.database import Base
from beta_signup.models import App, PromotionalCode, Tester  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

MANAGED_TABLES = {App.__tablename__, PromotionalCode.__tablename__, Tester.__tablename__}


def include_object(object, name, type_, reflected, compare_to):
    # Autogenerate must never propose dropping tables this service does not own
    if type_ == "table":
        return name in MANAGED_TABLES
    return True


if context.is_offline_mode():
    raise SystemExit("SQL script generation is not supported; run migrations against a database")

engine = create_engine(get_database_url(os.getenv("ENV")), poolclass=pool.NullPool)
with engine.connect() as connection:
    context.configure(
        connection=connection,
        target_metadata=Base.metadata,
        include_object=include_object,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()
