"""Alembic environment: runs migrations against DATABASE_URL."""
from logging.config import fileConfig

from alembic import context

from study_funnel.database import Base, engine
import study_funnel.models.participant  # noqa: F401
import study_funnel.models.notification  # noqa: F401
import study_funnel.models.booking  # noqa: F401
import study_funnel.models.survey_response  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=str(engine.url),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=engine.url.get_backend_name() == 'sqlite',
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == 'sqlite',
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
