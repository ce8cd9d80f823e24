"""
Administrative routes.

Requests carry X-Admin-Key and run with an administrative TenantContext,
which the isolation filter leaves unrestricted. With ADMIN_API_KEY unset every
request is refused.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from . import allocation, catalog
from .core.config import get_settings
from .core.db import get_session
from .core.responses import ApiResponse
from .schemas import ShowCapacityOut, TenantCreate, TenantOut
from .tenancy import TenantContext, admin_key_matches

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


async def get_admin_context(
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
) -> TenantContext:
    """Verify the admin key and hand out the unrestricted context."""
    if not admin_key_matches(x_admin_key, get_settings().admin_api_key):
        logger.warning("Rejected admin request with missing or invalid X-Admin-Key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin key",
        )
    return TenantContext.administrative()


@router.post("/tenants", response_model=ApiResponse[TenantOut], status_code=status.HTTP_201_CREATED)
async def create_tenant(
    body: TenantCreate,
    ctx: TenantContext = Depends(get_admin_context),
    session: AsyncSession = Depends(get_session),
):
    tenant = await catalog.provision_tenant(session, ctx, body.slug, body.name, body.is_active)
    await session.commit()
    return ApiResponse.success(tenant)


@router.get("/shows/{show_key}/capacity", response_model=ApiResponse[ShowCapacityOut])
async def show_capacity(
    show_key: uuid.UUID,
    ctx: TenantContext = Depends(get_admin_context),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await allocation.get_show_capacity(session, ctx, show_key))
