# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Alembic environment for the e-Service schema.

Run from ``backend/``:  ``alembic upgrade head``.  The URL always comes from
core.config.settings, never from alembic.ini.
"""

import os
import sys

_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from alembic import context  # noqa: E402
from sqlalchemy import create_engine, pool  # noqa: E402

import models  # noqa: F401, E402  registers users, tokens, profiles, categories, audit
from core.config import settings  # noqa: E402
from database import Base  # noqa: E402

_URL = settings.database_url

_OPTIONS = dict(
    target_metadata=Base.metadata,
    compare_type=True,
    # SQLite cannot ALTER most columns in place
    render_as_batch=_URL.startswith("sqlite"),
)


def run_offline() -> None:
    """Emit SQL to stdout (``alembic upgrade head --sql``)."""
    context.configure(url=_URL, literal_binds=True, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(_URL, poolclass=pool.NullPool)
    with engine.connect() as conn:
        context.configure(connection=conn, **_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
