import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

# load dotenv explicitly before importing modules that read env
from dotenv import load_dotenv

# ensure .env located next to this file is loaded (robust even if working dir differs)
env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(env_path)

from fastapi import FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

import cashfree_client  # noqa: F401  registers "cashfree"
import phonepe_client  # noqa: F401  registers "phonepe"
from config import Settings
from course_catalog import (
    CatalogError,
    find_course,
    load_catalog,
    parse_course_id,
    render_course_detail,
    render_load_error,
    render_not_found,
)
from gateway_base import BasePaymentGateway, get_gateway, list_available_gateways
from gateway_errors import (
    ErrorKind,
    InvalidWebhookError,
    PaymentGatewayError,
)

logging.basicConfig(level=os.getenv("PAYMENTS_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("uvicorn.error")
logger.setLevel(logging.INFO)

ERROR_STATUS = {
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.NETWORK: 504,
    ErrorKind.GATEWAY: 502,
}


# ======================
# Schemas
# ======================
class CustomerInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class CreateOrderRequest(BaseModel):
    amount: float = Field(..., gt=0, description="amount in rupees")
    order_id: Optional[str] = Field(None, max_length=63)
    customer: Optional[CustomerInfo] = None
    description: Optional[str] = None
    currency: str = "INR"


class RefundRequest(BaseModel):
    payment_id: str
    amount: float = Field(..., gt=0)
    order_id: Optional[str] = None


def log_env_check(settings: Settings) -> None:
    # safe boolean checks only (DO NOT print secret values)
    logger.info("ENV CHECK - PHONEPE_CLIENT_ID present: %s", bool(settings.phonepe.client_id))
    logger.info("ENV CHECK - PHONEPE_CLIENT_SECRET present: %s", bool(settings.phonepe.client_secret))
    logger.info("ENV CHECK - PHONEPE_ENV: %s", settings.phonepe.environment)
    logger.info("ENV CHECK - CASHFREE_APP_ID present: %s", bool(settings.cashfree.app_id))
    logger.info("ENV CHECK - CASHFREE_APP_SECRET present: %s", bool(settings.cashfree.app_secret))
    logger.info("ENV CHECK - FRONTEND_URL present: %s", bool(settings.frontend_url))
    logger.info("ENV CHECK - BACKEND_URL present: %s", bool(settings.backend_url))


def create_app(
    settings: Optional[Settings] = None,
    gateways: Optional[Dict[str, BasePaymentGateway]] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    log_env_check(settings)

    if gateways is None:
        gateways = {name: get_gateway(name, settings) for name in list_available_gateways()}

    app = FastAPI(title="Payments Backend - PhonePe & Cashfree")
    app.state.settings = settings
    app.state.gateways = gateways
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url] if settings.frontend_url else ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # -----------------------
    # Security headers middleware required by PhonePe
    # -----------------------
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
        return response

    # -----------------------
    # Error mapping
    # -----------------------
    @app.exception_handler(PaymentGatewayError)
    async def gateway_error_handler(request: Request, exc: PaymentGatewayError):
        status = 400 if isinstance(exc, InvalidWebhookError) else ERROR_STATUS[exc.kind]
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(exc.to_dict(), status_code=status)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse({"error": "validation", "message": str(exc)}, status_code=422)

    def gateway_for(name: str) -> BasePaymentGateway:
        gateway = app.state.gateways.get(name.lower())
        if gateway is None:
            supported = ", ".join(sorted(app.state.gateways))
            raise HTTPException(status_code=404, detail=f"Unknown gateway '{name}'. Supported: {supported}")
        return gateway

    # ======================
    # Root
    # ======================
    @app.get("/")
    def root():
        return {"message": "Payments API running", "gateways": sorted(app.state.gateways)}

    # ======================
    # Orders / refunds
    # ======================
    @app.post("/payments/{gateway_name}/orders")
    def create_order(gateway_name: str, req: CreateOrderRequest):
        gateway = gateway_for(gateway_name)
        customer = req.customer.model_dump() if req.customer else None
        logger.info("Creating %s order order_id=%s amount=%s", gateway_name, req.order_id, req.amount)
        return gateway.create_order(
            amount=req.amount,
            order_id=req.order_id,
            customer=customer,
            description=req.description,
            currency=req.currency,
        )

    @app.get("/payments/{gateway_name}/orders/{order_id}")
    def order_status(gateway_name: str, order_id: str):
        return gateway_for(gateway_name).get_order_status(order_id)

    @app.get("/payments/cashfree/orders/{order_id}/payments/{payment_id}")
    def cashfree_payment_details(order_id: str, payment_id: str):
        return gateway_for("cashfree").get_payment_details(order_id, payment_id)

    @app.post("/payments/{gateway_name}/refunds")
    def refund(gateway_name: str, req: RefundRequest):
        gateway = gateway_for(gateway_name)
        return gateway.refund(payment_id=req.payment_id, amount=req.amount, order_id=req.order_id)

    @app.get("/payments/phonepe/refunds/{refund_id}")
    def phonepe_refund_status(refund_id: str):
        return gateway_for("phonepe").get_refund_status(refund_id)

    # ======================
    # Webhooks
    # ======================
    @app.post("/api/webhook/{gateway_name}")
    async def webhook(gateway_name: str, request: Request):
        gateway = gateway_for(gateway_name)
        raw = await request.body()

        if not gateway.verify_webhook(raw, request.headers):
            logger.warning("%s webhook signature verification failed", gateway_name)
            raise HTTPException(status_code=401, detail="Invalid signature")

        try:
            payload = json.loads(raw.decode("utf-8")) if raw else None
        except ValueError:
            logger.warning("%s webhook body is not valid JSON", gateway_name)
            payload = None

        event = gateway.normalize_webhook(payload)
        return event.to_dict()

    # ======================
    # Courses
    # ======================
    @app.get("/courses/courses.json")
    def course_catalog_file():
        path = app.state.settings.course_catalog_path
        if not Path(path).is_file():
            raise HTTPException(status_code=404, detail="Course catalog not found")
        return FileResponse(path, media_type="application/json")

    @app.get("/courses/detail", response_class=HTMLResponse)
    def course_detail(id: Optional[str] = Query(None)):
        course_id = parse_course_id(id)
        try:
            courses = load_catalog(app.state.settings.course_catalog_path)
        except CatalogError:
            logger.exception("Error loading course %s", course_id)
            return HTMLResponse(render_load_error(), status_code=500)

        course = find_course(courses, course_id)
        if course is None:
            return HTMLResponse(render_not_found(), status_code=404)
        return HTMLResponse(render_course_detail(course, app.state.settings.site_name))

    # --- Diagnostic endpoints ---

    def _check_diag_key(x_diag: Optional[str]):
        # simple header-based auth so only operators can hit these endpoints
        expected = app.state.settings.diag_secret
        if not expected:
            raise HTTPException(status_code=403, detail="Diag disabled (no DIAG_SECRET set)")
        if x_diag != expected:
            raise HTTPException(status_code=401, detail="Invalid diag secret")

    @app.get("/diag/phonepe-token")
    def diag_phonepe_token(x_diag: Optional[str] = Header(None)):
        """Token cache state. Never returns the token value."""
        _check_diag_key(x_diag)
        return gateway_for("phonepe").token_info()

    @app.post("/diag/phonepe-token/clear")
    def diag_clear_phonepe_token(x_diag: Optional[str] = Header(None)):
        _check_diag_key(x_diag)
        gateway_for("phonepe").clear_token_cache()
        return {"message": "PhonePe token cache cleared"}
    # --- end diagnostics ---

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
