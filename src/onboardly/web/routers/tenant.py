from fastapi import APIRouter

from onboardly.core.modules.tenant.models import TenantView
from onboardly.web.deps import AccessTokenDep, AppDep
from onboardly.web.openapi import ErrorResponse

router = APIRouter(tags=["tenant"])


@router.get(
    "/tenant",
    summary="Current tenant",
    description="Get the tenant of the authenticated user.",
    operation_id="getCurrentTenant",
    responses={
        200: {"description": "Current tenant"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_tenant(app: AppDep, access_token: AccessTokenDep) -> TenantView:
    return await app.get_current_tenant(access_token)
