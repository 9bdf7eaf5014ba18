"""Lookup, error and dependency helpers shared by the route modules."""

from typing import Optional, TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Session

from database import Base
from integrations.cet_client import CetClient
from integrations.exceptions import MappingValidationError

ModelT = TypeVar("ModelT", bound=Base)


def get_cet_client() -> CetClient:
    """Upload client shared by dispatch and credential checks (overridden in tests)."""
    return CetClient()


def _label(model: type[Base]) -> str:
    # "sync_configurations" -> "Sync configuration"
    return model.__tablename__.removesuffix("s").replace("_", " ").capitalize()


def get_or_404(
    db: Session, model: type[ModelT], entity_id: str, detail: Optional[str] = None
) -> ModelT:
    """Load a row by primary key, turning a miss into a 404.

    Without ``detail`` the message names the table and the id, e.g.
    ``"Sync configuration abc not found"``.
    """
    entity = db.get(model, entity_id)
    if entity is None:
        raise HTTPException(
            status_code=404, detail=detail or f"{_label(model)} {entity_id} not found"
        )
    return entity


def unprocessable(error: MappingValidationError) -> HTTPException:
    """A 422 carrying a rejected save's validation message."""
    return HTTPException(status_code=422, detail=str(error))
