from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cashdrawer.core.schemas import PrefIn, PrefOut, SectionOut
from cashdrawer.db import get_db
from cashdrawer.routers.deps import Actor, get_actor
from cashdrawer.services import sections

router = APIRouter(tags=["sections"])


@router.get("/sections", response_model=List[SectionOut])
def list_sections(branch_id: str = Query(...), db: Session = Depends(get_db)):
    return sections.list_sections(db, branch_id)


@router.get("/prefs/{key}", response_model=PrefOut)
def get_pref(
    key: str,
    branch_id: str = Query(...),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return PrefOut(key=key, branch_id=branch_id, value=sections.get_pref(db, key, branch_id, actor.id))


@router.put("/prefs/{key}", response_model=PrefOut)
def set_pref(
    key: str,
    payload: PrefIn,
    branch_id: str = Query(...),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    row = sections.set_pref(db, key, branch_id, actor.id, payload.value)
    return PrefOut(key=key, branch_id=branch_id, value=row.value)
