from sqlalchemy import Column, Text, TIMESTAMP, func

from .base import Base, JSONType


class Profile(Base):
    """
    Display data for application users. Read-only here.
    """
    __tablename__ = 'profiles'

    id = Column(Text, primary_key=True)
    full_name = Column(Text)
    email = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())


class Case(Base):
    """
    The subset of a case record needed for titles and case membership.
    """
    __tablename__ = 'cases'

    id = Column(Text, primary_key=True)
    case_title = Column(Text)
    case_number = Column(Text)
    status = Column(Text)

    # Case membership
    assigned_lawyer_id = Column(Text)
    lawyer_id = Column(Text)
    assigned_to = Column(Text)
    assigned_users = Column(JSONType, default=list)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
