from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException


@dataclass(frozen=True)
class Actor:
    id: str
    branch_id: Optional[str] = None


def get_actor(
    x_actor_id: Optional[str] = Header(default=None),
    x_branch_id: Optional[str] = Header(default=None),
) -> Actor:
    if not x_actor_id:
        raise HTTPException(status_code=401, detail="X-Actor-Id header required")
    return Actor(id=x_actor_id, branch_id=x_branch_id or None)
