"""
Read API

    GET /order/{order_uid}   200 order JSON
                             400 {"error": "order_uid is required"}   blank id
                             404 {"error": "order not found"}
                             500 {"error": "internal server error"}

Handlers are plain functions, so FastAPI runs them in its thread pool and
many lookups proceed concurrently against the shared cache and DB pool.
"""

import logging

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse

from src.order_service.errors import OrderNotFoundError
from src.order_service.ports import OrderGetter

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def build_router(service: OrderGetter) -> APIRouter:
    router = APIRouter(tags=["orders"])

    @router.get("/order/")
    def missing_order_uid():
        return _error(400, "order_uid is required")

    @router.get("/order/{order_uid}")
    def get_order(order_uid: str):
        order_uid = order_uid.strip()
        if not order_uid:
            return _error(400, "order_uid is required")

        try:
            order = service.get_order_by_uid(order_uid)
        except OrderNotFoundError:
            logger.info("Order not found", extra={"correlation_id": order_uid})
            return _error(404, "order not found")
        except Exception:
            logger.error("Failed to get order", exc_info=True, extra={"correlation_id": order_uid})
            return _error(500, "internal server error")

        return JSONResponse(status_code=200, content=order.model_dump(mode="json"))

    return router


def create_app(service: OrderGetter) -> FastAPI:
    """Build the FastAPI application serving orders from service."""
    app = FastAPI(title="Order Service", description="Order lookup by order_uid")
    app.include_router(build_router(service))
    return app
