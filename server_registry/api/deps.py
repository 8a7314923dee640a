"""
API dependency helpers.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from server_registry.db.database import get_db
from server_registry.services.registry_service import RegistryService


def get_registry_service(db: Session = Depends(get_db)) -> RegistryService:
    return RegistryService(db)
