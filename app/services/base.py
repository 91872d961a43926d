import logging
from typing import Optional
from sqlalchemy.orm import Session


class BaseService:
    """Common plumbing for DB-backed domain services scoped to one organization."""

    def __init__(self, db: Session, org_id: Optional[int] = None):
        self.db = db
        self.org_id = org_id
        self._logger = logging.getLogger(self.__class__.__module__)
