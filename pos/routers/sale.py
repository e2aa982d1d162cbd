from fastapi import APIRouter, HTTPException, Depends, status
from typing import List, Optional

from pos.core.errors import PartialReturnError, PersistenceError, ReturnError
from pos.dependencies.services import get_return_processor, get_sale_recorder
from pos.models.sale import SaleRecord
from pos.schemas.sale import ReturnRequest
from pos.services.returns import ReturnProcessor
from pos.services.sales import SaleRecorder, SalesSummary

router = APIRouter()


# ==========================================
# 1. REPORTS
# ==========================================

@router.get("/", response_model=List[SaleRecord], response_model_by_alias=False)
async def list_sales(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    recorder: SaleRecorder = Depends(get_sale_recorder)
):
    """Sales and returns between two YYYY-MM-DD dates (inclusive), newest first."""
    return await recorder.list_sales(start_date, end_date)


@router.get("/summary", response_model=SalesSummary)
async def sales_summary(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    recorder: SaleRecorder = Depends(get_sale_recorder)
):
    return await recorder.summarize(start_date, end_date)


@router.get("/{order_number}", response_model=SaleRecord, response_model_by_alias=False)
async def get_sale(order_number: str, recorder: SaleRecorder = Depends(get_sale_recorder)):
    sale = await recorder.find_by_order_number(order_number)
    if not sale:
        raise HTTPException(404, f"Order {order_number} not found")
    return sale


# ==========================================
# 2. RETURNS
# ==========================================

@router.post("/returns", response_model=SaleRecord, response_model_by_alias=False, status_code=status.HTTP_201_CREATED)
async def create_return(data: ReturnRequest, processor: ReturnProcessor = Depends(get_return_processor)):
    try:
        return await processor.process_return(data.order_number, data.items, data.refund_amount)
    except PartialReturnError as e:
        # The refund record exists; the operator must fix stock by hand
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": e.message,
                "return_order_number": e.record.order_number,
                "failures": e.failures
            }
        )
    except ReturnError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, e.message)
    except PersistenceError as e:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, e.message)
