"""Account management routes — deactivation and scheduled deletion."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from partake.database import get_db
from partake.schemas.account import DeactivationStatusOut, DeleteAccountRequest
from partake.schemas.user import UserOut
from partake.services import account_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.delete("/{user_id}", response_model=UserOut, status_code=status.HTTP_202_ACCEPTED)
def delete_account(user_id: str, payload: DeleteAccountRequest, db: Session = Depends(get_db)):
    """Schedule the account for deletion after the grace period.

    Requires the confirmation text "DELETE MY ACCOUNT".
    """
    logger.warning("User %s requesting account deletion", user_id)
    return account_service.request_deletion(db, user_id, payload.confirmation, payload.reason)


@router.post("/{user_id}/deactivate", response_model=UserOut, status_code=status.HTTP_202_ACCEPTED)
def deactivate(user_id: str, db: Session = Depends(get_db)):
    return account_service.deactivate(db, user_id)


@router.post("/{user_id}/reactivate", response_model=UserOut)
def reactivate(user_id: str, db: Session = Depends(get_db)):
    return account_service.reactivate(db, user_id)


@router.get("/{user_id}/deactivation-status", response_model=DeactivationStatusOut)
def deactivation_status(user_id: str, db: Session = Depends(get_db)):
    return DeactivationStatusOut(user_id=user_id, deactivated=account_service.is_deactivated(db, user_id))
