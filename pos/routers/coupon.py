from fastapi import APIRouter, HTTPException, Depends, status
from typing import List

from pos.core.errors import CouponError, CouponNotFoundError, DuplicateCouponError
from pos.dependencies.services import get_coupon_service
from pos.models.coupon import Coupon
from pos.schemas.coupon import CouponCreate, CouponUpdate, CouponValidateRequest
from pos.services.coupons import CouponEvaluation, CouponService
from pos.services.pricing import cart_subtotal

router = APIRouter()


@router.get("/", response_model=List[Coupon], response_model_by_alias=False)
async def list_coupons(service: CouponService = Depends(get_coupon_service)):
    return await service.list()


@router.post("/", response_model=Coupon, response_model_by_alias=False, status_code=status.HTTP_201_CREATED)
async def create_coupon(data: CouponCreate, service: CouponService = Depends(get_coupon_service)):
    try:
        return await service.create(data.model_dump())
    except DuplicateCouponError as e:
        raise HTTPException(status.HTTP_409_CONFLICT, e.message)
    except CouponError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, e.message)


@router.put("/{coupon_id}", response_model=Coupon, response_model_by_alias=False)
async def update_coupon(
    coupon_id: str,
    data: CouponUpdate,
    service: CouponService = Depends(get_coupon_service)
):
    try:
        return await service.update(coupon_id, data.model_dump(exclude_unset=True))
    except CouponNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, e.message)
    except DuplicateCouponError as e:
        raise HTTPException(status.HTTP_409_CONFLICT, e.message)
    except CouponError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, e.message)


@router.delete("/{coupon_id}")
async def delete_coupon(coupon_id: str, service: CouponService = Depends(get_coupon_service)):
    if not await service.delete(coupon_id):
        raise HTTPException(404, "Coupon not found")
    return {"message": "Coupon deleted"}


@router.post("/validate", response_model=CouponEvaluation)
async def validate_coupon(data: CouponValidateRequest, service: CouponService = Depends(get_coupon_service)):
    """
    Check a code against the current cart. An invalid coupon is a normal
    response (valid=false with a reason), not an HTTP error.
    """
    return await service.validate(data.code, data.items, cart_subtotal(data.items))
