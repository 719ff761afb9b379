import logging
from logging.config import fileConfig

from alembic import context
from certdesigner.app import create_app, db

config = context.config

if config.config_file_name:
    fileConfig(config.config_file_name)
logger = logging.getLogger("alembic.env")

app = create_app()

# models register their tables on db.metadata when the app module imports them
with app.app_context():
    target_metadata = db.metadata


def _database_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    return url or app.config["SQLALCHEMY_DATABASE_URI"]


def run_migrations_offline() -> None:
    with app.app_context():
        context.configure(
            url=_database_url(),
            target_metadata=target_metadata,
            literal_binds=True,
            dialect_opts={"paramstyle": "named"},
        )

        with context.begin_transaction():
            context.run_migrations()


def run_migrations_online() -> None:
    with app.app_context():
        with db.engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                # sqlite needs table rebuilds for ALTER
                render_as_batch=connection.dialect.name == "sqlite",
            )

            with context.begin_transaction():
                context.run_migrations()
        logger.info("migrations applied to %s", db.engine.url.render_as_string(hide_password=True))


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
