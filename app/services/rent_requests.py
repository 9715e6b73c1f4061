import logging
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from app.core.errors import RentRequestNotFound
from app.db.models import RentRequest, RentRequestStatus
from app.schemas.rent_request import RentRequestCreate

logger = logging.getLogger(__name__)


def create_rent_request(db: Session, body: RentRequestCreate) -> RentRequest:
    request = RentRequest(**body.model_dump(), status=RentRequestStatus.PENDING)
    db.add(request)
    db.commit()
    db.refresh(request)
    logger.info("Rent request %s created for builder %s", request.id, request.builder_id)
    return request


def list_by_builder(db: Session, builder_id: int) -> List[RentRequest]:
    """Newest first; id breaks ties so the order is stable."""
    return (
        db.query(RentRequest)
        .filter(RentRequest.builder_id == builder_id)
        .order_by(RentRequest.created_at.desc(), RentRequest.id.desc())
        .all()
    )


def get_rent_request(db: Session, request_id: int) -> RentRequest:
    request = db.query(RentRequest).filter(RentRequest.id == request_id).first()
    if not request:
        raise RentRequestNotFound()
    return request


def set_status(db: Session, request_id: int, status: RentRequestStatus) -> RentRequest:
    """
    Overwrite the status of a rent request. Already-decided requests can be flipped;
    only a missing id is an error.
    """
    request = get_rent_request(db, request_id)
    previous = request.status
    if previous != RentRequestStatus.PENDING:
        logger.info("Rent request %s re-decided: %s -> %s", request_id, previous.value, status.value)
    request.status = status
    request.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(request)
    logger.info("Rent request %s is now %s", request_id, status.value)
    return request
