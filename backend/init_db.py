# init_db.py (in backend folder)

import argparse

from loguru import logger
from sqlalchemy import inspect

import kuurier.models  # noqa: F401
from kuurier.infra.postgres import Base, engine, init_db


def reset_db(drop: bool = False):
    """Create all tables, optionally dropping existing ones first"""
    if drop:
        logger.warning("Dropping all tables...")
        Base.metadata.drop_all(bind=engine)

    init_db()
    logger.info("Database initialized")

    inspector = inspect(engine)
    for table in inspector.get_table_names():
        columns = ", ".join(col["name"] for col in inspector.get_columns(table))
        logger.info(f"{table}: {columns}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the identity service tables")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()
    reset_db(drop=args.drop)
