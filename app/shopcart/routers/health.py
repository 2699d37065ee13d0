from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from app.shopcart.core.config import settings
from app.shopcart.core.error_catalog import ErrorCatalog
from app.shopcart.core.errors import error_response
from app.shopcart.db.session import get_db

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    trace_id = getattr(request.state, "trace_id", "")
    return {"status": "ok", "trace_id": trace_id}


@router.get("/ready")
def ready(request: Request, db=Depends(get_db)):
    trace_id = getattr(request.state, "trace_id", "")
    if settings.CART_STORE_BACKEND == "database":
        try:
            db.execute(text("SELECT 1"))
        except Exception as exc:
            return error_response(
                code=ErrorCatalog.STORE_UNAVAILABLE.code,
                message=ErrorCatalog.STORE_UNAVAILABLE.message,
                details={"reason": str(exc)},
                trace_id=trace_id,
                status_code=ErrorCatalog.STORE_UNAVAILABLE.status_code,
            )
    return {"status": "ready", "store": settings.CART_STORE_BACKEND, "trace_id": trace_id}
