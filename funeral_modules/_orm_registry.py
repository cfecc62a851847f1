"""
Module ORM Registry (``funeral_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains its table before tables are created.
``funeral_kernel.db.engine.create_tables`` calls ``import_all_orm_models``
itself, so scripts and ``tests/conftest.py`` need only that one function.

Architecture position
---------------------
**Modules layer** -- utility.  Imports sibling ``funeral_modules`` packages.
"""


def import_all_orm_models() -> None:
    """Import every ``funeral_modules.*.orm`` module.  Idempotent."""
    # fmt: off
    import funeral_modules.case.orm  # noqa: F401
    import funeral_modules.contacts.orm  # noqa: F401
    import funeral_modules.contracts.orm  # noqa: F401
    import funeral_modules.memorial.orm  # noqa: F401
    import funeral_modules.payments.orm  # noqa: F401
    import funeral_modules.preplanning.orm  # noqa: F401
    # fmt: on
