import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.ledger import LedgerError, LedgerErrorKind, LedgerGateway, SUCCESS_STATUS
from ..types.requests import TransferRequest
from ..types.responses import BalanceResponse, OperatorResponse, TransferResponse
from .dependencies import get_gateway


logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_CODES = {
    LedgerErrorKind.NETWORK: 502,
    LedgerErrorKind.TIMEOUT: 502,
    LedgerErrorKind.NOT_FOUND: 404,
    LedgerErrorKind.REJECTED: 422,
    LedgerErrorKind.INVALID_REQUEST: 422,
    LedgerErrorKind.NOT_INITIALIZED: 503,
}


def _raise_for(error: LedgerError) -> None:
    status_code = STATUS_CODES.get(error.kind, 500)
    detail = {"error": error.kind.value, "message": error.detail}
    if error.status:
        detail["status"] = error.status
    if error.transaction_id:
        detail["transactionId"] = error.transaction_id
    raise HTTPException(status_code=status_code, detail=detail)


@router.get("/balance", response_model=BalanceResponse, response_model_by_alias=True)
async def get_balance(
    account_id: Optional[str] = Query(None, alias="accountId", description="Account to query; defaults to the operator"),
    gateway: LedgerGateway = Depends(get_gateway),
):
    result = await gateway.get_account_balance(account_id)
    if not result.is_ok:
        _raise_for(result.error)
    return BalanceResponse(**result.value.to_dict())


@router.post("/transfer", response_model=TransferResponse, response_model_by_alias=True)
async def transfer_hbar(
    request: TransferRequest,
    gateway: LedgerGateway = Depends(get_gateway),
):
    """
    Send HBAR from the operator account.

    A transaction that reaches consensus with a non-SUCCESS status is a 422
    carrying the status string.
    """
    result = await gateway.transfer(request.to_account_id, request.amount)
    if not result.is_ok:
        _raise_for(result.error)

    transfer = result.value
    if transfer.status != SUCCESS_STATUS:
        logger.warning(f"Transfer {transfer.transaction_id} finished with status {transfer.status}")
        raise HTTPException(
            status_code=422,
            detail={
                "error": LedgerErrorKind.REJECTED.value,
                "message": f"Transfer failed with status {transfer.status}",
                "status": transfer.status,
                "transactionId": transfer.transaction_id,
            },
        )
    return TransferResponse(**transfer.to_dict())


@router.get("/operator", response_model=OperatorResponse, response_model_by_alias=True)
async def get_operator(gateway: LedgerGateway = Depends(get_gateway)):
    session = gateway.session
    if session is None:
        return OperatorResponse(initialized=False)
    return OperatorResponse(
        initialized=True,
        network=session.network.value,
        operator_account_id=session.operator_account_id,
        public_key=session.public_key_hex,
        max_transaction_fee=session.max_transaction_fee,
        max_query_payment=session.max_query_payment,
        initialized_at=session.initialized_at,
    )
