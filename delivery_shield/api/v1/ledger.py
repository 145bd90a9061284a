"""GET /v1/ledger/{user_id} - Store credit balance lookup"""

from fastapi import APIRouter, Depends

from delivery_shield.api.dependencies import get_ledger
from delivery_shield.api.v1.schemas import LedgerResponse
from delivery_shield.services.ledger import LedgerStore

router = APIRouter()


@router.get("/ledger/{user_id}", response_model=LedgerResponse)
def get_user_ledger(user_id: str, ledger: LedgerStore = Depends(get_ledger)):
    """
    Retrieve a user's store credit and payout wallet.

    Unknown users report a zero balance; the lookup never creates an account.
    """
    return LedgerResponse(
        user_id=user_id,
        store_credit_balance=ledger.get_balance(user_id),
        wallet_address=ledger.get_wallet_address(user_id) or "Not set",
    )
