"""
Rent requests: customers create them, builders list theirs and approve or reject.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.db.models import RentRequestStatus
from app.schemas.rent_request import RentRequestCreate, RentRequestOut
from app.services import rent_requests

router = APIRouter()


@router.post("", response_model=RentRequestOut, status_code=status.HTTP_201_CREATED)
def create_rent_request(body: RentRequestCreate, db: Session = Depends(get_db)):
    return rent_requests.create_rent_request(db, body)


@router.get("/builder/{builder_id}", response_model=List[RentRequestOut])
def list_builder_rent_requests(builder_id: int, db: Session = Depends(get_db)):
    """All rent requests addressed to a builder, newest first."""
    return rent_requests.list_by_builder(db, builder_id)


@router.get("/{request_id}", response_model=RentRequestOut)
def get_rent_request(request_id: int, db: Session = Depends(get_db)):
    return rent_requests.get_rent_request(db, request_id)


@router.patch("/{request_id}/approve", response_model=RentRequestOut)
def approve_rent_request(request_id: int, db: Session = Depends(get_db)):
    return rent_requests.set_status(db, request_id, RentRequestStatus.APPROVED)


@router.patch("/{request_id}/reject", response_model=RentRequestOut)
def reject_rent_request(request_id: int, db: Session = Depends(get_db)):
    return rent_requests.set_status(db, request_id, RentRequestStatus.REJECTED)
