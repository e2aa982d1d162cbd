from fastapi import APIRouter, HTTPException, Depends, status

from pos.core.errors import (
    InsufficientStockError,
    InvalidCartError,
    PaymentValidationError,
    PersistenceError,
    StockCheckError,
)
from pos.dependencies.services import get_checkout_service
from pos.schemas.checkout import CheckoutRequest, CheckoutResponse, GatewayCallbackRequest, QuoteRequest
from pos.services.checkout import Bill, CheckoutResult, CheckoutService

router = APIRouter()


def _response(result: CheckoutResult) -> CheckoutResponse:
    return CheckoutResponse(
        message=result.message,
        sale=result.sale,
        bill=result.bill,
        change_due=result.change_due,
        post_commit_errors=result.post_commit_errors,
        receipt=result.receipt,
    )


async def _run(coro) -> CheckoutResponse:
    try:
        return _response(await coro)
    except (InvalidCartError, PaymentValidationError) as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, e.message)
    except InsufficientStockError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "Insufficient stock", "shortfalls": e.shortfalls}
        )
    except (StockCheckError, PersistenceError) as e:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, e.message)


# ==========================================
# 1. QUOTE (re-run on every cart change)
# ==========================================

@router.post("/quote", response_model=Bill)
async def quote(data: QuoteRequest, service: CheckoutService = Depends(get_checkout_service)):
    try:
        return await service.quote(data.items, data.coupon_code)
    except InvalidCartError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, e.message)


# ==========================================
# 2. SETTLE (cash / split / operator-confirmed online)
# ==========================================

@router.post("/", response_model=CheckoutResponse, response_model_by_alias=False, status_code=status.HTTP_201_CREATED)
async def settle(data: CheckoutRequest, service: CheckoutService = Depends(get_checkout_service)):
    """
    Validate payment and stock, record the sale, then decrement stock and
    count coupon usage. Follow-up problems after the sale is recorded come
    back in ``post_commit_errors``; the sale stays completed.
    """
    return await _run(service.settle(data.items, data.payment, data.coupon_code, data.order_number))


# ==========================================
# 3. PAYMENT GATEWAY SUCCESS CALLBACK
# ==========================================

@router.post("/gateway-callback", response_model=CheckoutResponse, response_model_by_alias=False, status_code=status.HTTP_201_CREATED)
async def gateway_callback(data: GatewayCallbackRequest, service: CheckoutService = Depends(get_checkout_service)):
    return await _run(
        service.confirm_gateway_payment(data.items, data.confirmation, data.coupon_code, data.order_number)
    )
