"""POST/GET /api/user/orders - Order upload and listing"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from starlette.concurrency import run_in_threadpool

from loyalty_gateway.api.v1.schemas import OrderResponse
from loyalty_gateway.api.dependencies import get_current_user_id, get_storage
from loyalty_gateway.infrastructure.database.storage import DatabaseStorage
from loyalty_gateway.domain.orders import submit_order
from loyalty_gateway.domain.exceptions import InvalidOrderNumberError, OrderConflictError

router = APIRouter()


@router.post(
    "/orders",
    status_code=status.HTTP_202_ACCEPTED,
    responses={200: {"description": "Order already uploaded by this user"}},
)
async def upload_order(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    storage: DatabaseStorage = Depends(get_storage),
):
    """
    Upload an order number (plain text body) for accrual.

    Returns:
        202 accepted for processing, 200 already uploaded by this user,
        409 uploaded by another user, 422 fails the Luhn check
    """
    number = (await request.body()).decode("utf-8", errors="replace").strip()
    if not number:
        raise HTTPException(status_code=400, detail="Empty order number")

    try:
        # Storage is synchronous; keep the event loop free for the accrual pipeline
        _, created = await run_in_threadpool(submit_order, storage, user_id, number)
    except InvalidOrderNumberError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except OrderConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return Response(status_code=status.HTTP_202_ACCEPTED if created else status.HTTP_200_OK)


@router.get("/orders", response_model=List[OrderResponse], responses={204: {"description": "No orders"}})
def list_orders(
    user_id: str = Depends(get_current_user_id),
    storage: DatabaseStorage = Depends(get_storage),
):
    """
    List the user's orders, oldest upload first.

    accrual is only present for PROCESSED orders.
    """
    orders = storage.get_user_orders(user_id)
    if not orders:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [OrderResponse.from_domain(o) for o in orders]
