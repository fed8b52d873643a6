from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_ignoring_conflicts(session: AsyncSession, table, values: dict, index_elements: list):
    """INSERT ... ON CONFLICT DO NOTHING for the dialect the session is bound to."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    if dialect == "sqlite":
        return sqlite.insert(table).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    raise NotImplementedError(f"Conflict-tolerant insert is not supported for {dialect}")


def upsert(session: AsyncSession, table, values: dict, index_elements: list, update_values: dict):
    """INSERT ... ON CONFLICT DO UPDATE for the dialect the session is bound to."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values)
    else:
        raise NotImplementedError(f"Upsert is not supported for {dialect}")
    return stmt.on_conflict_do_update(index_elements=index_elements, set_=update_values)
