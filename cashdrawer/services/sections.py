"""Directorio de secciones y preferencias por (actor, sucursal)."""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cashdrawer.core.errors import ValidationError
from cashdrawer.models.section import Section, UserPref

LAST_SHIFT_SECTION = "last_shift_section"


def list_sections(db: Session, branch_id: str) -> List[Section]:
    if not branch_id:
        raise ValidationError("branch_id is required")
    return list(
        db.execute(
            select(Section).where(Section.branch_id == branch_id).order_by(Section.name, Section.id)
        ).scalars()
    )


def get_section(db: Session, section_id: str) -> Optional[Section]:
    return db.get(Section, section_id)


def create_section(db: Session, branch_id: str, name: str) -> Section:
    if not branch_id or not name:
        raise ValidationError("branch_id and name are required")
    sec = Section(branch_id=branch_id, name=name)
    db.add(sec)
    db.commit()
    db.refresh(sec)
    return sec


def _pref_row(db: Session, actor_id: str, branch_id: str, key: str) -> Optional[UserPref]:
    return db.execute(
        select(UserPref).where(
            UserPref.actor_id == actor_id,
            UserPref.branch_id == branch_id,
            UserPref.key == key,
        )
    ).scalar_one_or_none()


def get_pref(db: Session, key: str, branch_id: str, actor_id: str) -> Optional[str]:
    row = _pref_row(db, actor_id, branch_id, key)
    return row.value if row else None


def set_pref(db: Session, key: str, branch_id: str, actor_id: str, value: Optional[str]) -> UserPref:
    """Upsert; si otro writer insertó primero, actualiza su fila."""
    if not key or not branch_id:
        raise ValidationError("key and branch_id are required")
    for _ in range(2):
        row = _pref_row(db, actor_id, branch_id, key)
        if row is None:
            row = UserPref(actor_id=actor_id, branch_id=branch_id, key=key, value=value)
            db.add(row)
        else:
            row.value = value
        try:
            db.commit()
            return row
        except IntegrityError:
            db.rollback()
    raise ValidationError(f"Could not store preference {key}")
