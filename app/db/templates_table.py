"""
Templates table - database mirror of installed portfolio templates.

The JSON registry under the public templates root is what loaders and the
public listing read. This table keeps an admin-facing record of every
upload (who uploaded it, when) next to the rest of the platform's
relational data.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Integer, MetaData, String, Table, Text,
    delete, insert, select, update,
)

from app.db.postgres import get_db_session, get_engine
from app.schemas.schemas import TemplateRegistryEntry

metadata = MetaData()

templates_table = Table(
    "templates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("template_id", String(120), unique=True, nullable=False, index=True),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("version", String(50), nullable=False),
    Column("category", String(100), nullable=False),
    Column("thumbnail_url", Text),
    Column("manifest_path", Text, nullable=False),
    Column("entry_path", Text, nullable=False),
    Column("features", JSON, nullable=False, default=list),
    Column("is_premium", Boolean, nullable=False, default=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("uploaded_by", String(120)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


def init_templates_table() -> None:
    """Create the templates table if it does not exist."""
    metadata.create_all(get_engine(), tables=[templates_table])


def _row_to_dict(row) -> dict:
    data = dict(row._mapping)
    for key in ("created_at", "updated_at"):
        if isinstance(data.get(key), datetime):
            data[key] = data[key].isoformat()
    return data


def upsert_template_row(
    entry: TemplateRegistryEntry,
    uploaded_by: Optional[str] = None
) -> dict:
    """Insert or refresh the row for an installed template. Returns the stored row."""
    now = datetime.now(timezone.utc)
    values = {
        "name": entry.name,
        "description": entry.description,
        "version": entry.version,
        "category": entry.category,
        "thumbnail_url": entry.thumbnail,
        "manifest_path": entry.manifest_path,
        "entry_path": entry.entry_path,
        "features": list(entry.features),
        "is_premium": entry.is_premium,
        "is_active": entry.is_active,
        "uploaded_by": uploaded_by,
        "updated_at": now,
    }
    with get_db_session() as db:
        existing = db.execute(
            select(templates_table.c.id).where(templates_table.c.template_id == entry.id)
        ).fetchone()
        if existing:
            db.execute(
                update(templates_table)
                .where(templates_table.c.template_id == entry.id)
                .values(**values)
            )
        else:
            db.execute(
                insert(templates_table).values(
                    template_id=entry.id, created_at=now, **values
                )
            )
        row = db.execute(
            select(templates_table).where(templates_table.c.template_id == entry.id)
        ).fetchone()
        return _row_to_dict(row)


def list_template_rows() -> List[dict]:
    with get_db_session() as db:
        rows = db.execute(select(templates_table).order_by(templates_table.c.created_at)).fetchall()
        return [_row_to_dict(row) for row in rows]


def get_template_row(template_id: str) -> Optional[dict]:
    with get_db_session() as db:
        row = db.execute(
            select(templates_table).where(templates_table.c.template_id == template_id)
        ).fetchone()
        return _row_to_dict(row) if row else None


def set_template_row_active(template_id: str, is_active: bool) -> Optional[dict]:
    """Mirror the registry's active flag into the row. Returns None when there is no row."""
    with get_db_session() as db:
        result = db.execute(
            update(templates_table)
            .where(templates_table.c.template_id == template_id)
            .values(is_active=is_active, updated_at=datetime.now(timezone.utc))
        )
        if result.rowcount == 0:
            return None
        row = db.execute(
            select(templates_table).where(templates_table.c.template_id == template_id)
        ).fetchone()
        return _row_to_dict(row)


def delete_template_row(template_id: str) -> bool:
    with get_db_session() as db:
        result = db.execute(
            delete(templates_table).where(templates_table.c.template_id == template_id)
        )
        return result.rowcount > 0
