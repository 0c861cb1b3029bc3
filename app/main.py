# app/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# ---------------------------------------------
# LOAD ENVIRONMENT VARIABLES
# ---------------------------------------------
load_dotenv()

from app.config import settings
from app.errors import OrderAlreadyFinalized, OrderError
from app.logging_config import get_logger
from app.middleware import request_id_middleware

# ---------------------------------------------
# IMPORT ROUTERS
# ---------------------------------------------
from app.routers import orders, payfast_webhooks

logger = get_logger(__name__)

# ---------------------------------------------
# APP INIT
# ---------------------------------------------
app = FastAPI(
    title="Shop Orders API",
    version=settings.APP_VERSION,
)

# ---------------------------------------------
# MIDDLEWARE
# ---------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)


# ---------------------------------------------
# ERRORS
# ---------------------------------------------
@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    if isinstance(exc, OrderAlreadyFinalized):
        # Terminal order; gateway retries get a 200
        logger.warning("order_already_finalized", order_id=exc.order_id, state=exc.state)
    else:
        logger.info("order_request_rejected", error=type(exc).__name__, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


# ---------------------------------------------
# ROUTERS
# ---------------------------------------------

# Orders
app.include_router(orders.router, prefix="/api/order", tags=["Orders"])

# Gateway notifications
app.include_router(payfast_webhooks.router, prefix="/api/order", tags=["PayFast Notifications"])


# ---------------------------------------------
# ROOT ENDPOINT
# ---------------------------------------------
@app.get("/")
def root():
    return {"message": "Shop Orders API is running"}
