from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from academy.health import service
from academy.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root(request: Request):
    return {"ok": True, "rate_limit": rate_limit_health_info(request), "stripe": service.stripe_config_info()}

@router.get("/supabase")
def health_supabase():
    return JSONResponse(service.health_supabase_info())
