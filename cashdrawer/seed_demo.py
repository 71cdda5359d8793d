import argparse
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import models  # noqa: F401
from .db import Base, SessionLocal, engine
from .models.section import Section
from .services import sections

DEMO_SECTIONS = ("Bar", "Main Hall", "Terrace")


def ensure_section(db: Session, branch_id: str, name: str) -> Section:
    sec = db.execute(
        select(Section).where(Section.branch_id == branch_id, Section.name == name)
    ).scalars().first()
    return sec if sec is not None else sections.create_section(db, branch_id, name)


def seed(db: Session, branch_id: str, names: Sequence[str] = DEMO_SECTIONS) -> List[Section]:
    """Idempotente: re-ejecutar no duplica secciones."""
    return [ensure_section(db, branch_id, name) for name in names]


def main(argv=None):
    parser = argparse.ArgumentParser(description="Crea secciones demo para una sucursal")
    parser.add_argument("--branch", default="B1")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    db: Session = SessionLocal()
    try:
        for sec in seed(db, args.branch):
            print(f"[seed] section {sec.id} {sec.name!r} in branch {sec.branch_id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
