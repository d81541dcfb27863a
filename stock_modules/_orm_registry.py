"""
Module ORM Registry (``stock_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before tables are
created.  ``create_all_tables()`` is the one entry point that yields a
complete schema; the kernel's ``create_tables()`` only knows kernel tables.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling ``stock_modules``
packages and from ``stock_kernel.db.engine`` (allowed: modules -> kernel).
MUST NOT be imported by ``stock_kernel`` or ``stock_engines``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``stock_modules.*.orm`` module.

    Idempotent -- repeated calls are harmless.
    """
    import stock_kernel.models  # noqa: F401
    import stock_modules.fulfillment.orm  # noqa: F401


def create_all_tables() -> None:
    """Register all ORM models, then create every table."""
    from stock_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
