"""Seed reference currencies and payment methods into the router database."""

import argparse

from payroute.common.config import settings
from payroute.common.db import Base, make_session_factory
from payroute.services.router import models  # noqa: F401
from payroute.services.router.catalog import seed_reference_data


def main() -> None:
    """CLI entrypoint for catalog seeding."""

    parser = argparse.ArgumentParser(description="Insert missing reference rows; safe to run repeatedly.")
    parser.add_argument("--dsn", default=settings.database_dsn)
    parser.add_argument("--create-tables", action="store_true", help="create tables without running migrations")
    args = parser.parse_args()

    engine, session_factory = make_session_factory(args.dsn)
    if args.create_tables:
        Base.metadata.create_all(engine)
    seed_reference_data(session_factory)
    print(f"seeded catalog dsn={engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    main()
