from sqlalchemy import Column, String, Text, UniqueConstraint

from .shift import new_id
from ..db import Base


class Section(Base):
    __tablename__ = "section"

    id = Column(String(64), primary_key=True, default=new_id)
    branch_id = Column(String(64), nullable=False, index=True)
    name = Column(String(120), nullable=False)


class UserPref(Base):
    __tablename__ = "user_pref"

    id = Column(String(32), primary_key=True, default=new_id)
    actor_id = Column(String(64), nullable=False)
    branch_id = Column(String(64), nullable=False)
    key = Column(String(80), nullable=False)
    value = Column(Text, nullable=True)

    __table_args__ = (UniqueConstraint("actor_id", "branch_id", "key", name="uq_user_pref"),)
