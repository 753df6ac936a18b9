"""Dialect-specific statement helpers."""
from sqlalchemy.dialects import postgresql, sqlite
from campus_attendance import db

def dialect_insert(target):
    """``INSERT`` construct with ``on_conflict_*`` support for the bound dialect."""
    name = db.session.get_bind().dialect.name
    if name == 'postgresql':
        return postgresql.insert(target)
    if name == 'sqlite':
        return sqlite.insert(target)
    raise NotImplementedError(f'Upserts are not supported on {name}')
