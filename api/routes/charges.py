"""Charge listing for the merchant admin view and the customer order page."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from starlette import status as http_status

from api.dependencies import get_charge_listing_service
from application.dtos.payments import ChargeList
from application.services.charge_listing_service import ChargeListingService
from core.response import error_response
from domain.common.exceptions import UpstreamUnavailableError


router = APIRouter(prefix="/charges", tags=["Charges"])


@router.get("", summary="List charges")
async def list_charges(
    request: Request,
    include_all: bool = Query(default=False, alias="all", description="Include charges without a detected payment"),
    payer: Optional[str] = Query(default=None, description="Only charges paid from this address"),
    service: ChargeListingService = Depends(get_charge_listing_service),
):
    try:
        charges = await service.list_charges(valid_only=not include_all, payer=payer)
    except UpstreamUnavailableError as exc:
        # The admin page expects a plain 500 here rather than 502
        body = error_response(
            code=exc.code,
            message="Failed to fetch charges",
            error_type=exc.error_type,
            details=exc.details,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json"),
        )
    return ChargeList(data=charges).model_dump(mode="json")
