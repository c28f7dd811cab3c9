from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.logging_config import configure_logging
from config.settings import CORS_ORIGINS
from database import init_db
from middleware.error_handlers import register_exception_handlers
from middleware.rate_limit import limiter
from middleware.request_logging import RequestLoggingMiddleware
from routers.auth_routes import router as auth_router
from routers.dividend_routes import router as dividend_router
from routers.media_routes import router as media_router
from routers.order_routes import router as order_router
from routers.payment_routes import router as payment_router
from routers.paypal_routes import router as paypal_router
from routers.plaid_routes import router as plaid_router
from routers.portfolio_routes import router as portfolio_router
from routers.user_routes import router as user_router
from routers.wallet_routes import router as wallet_router

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Schema changes go through alembic; this only fills in missing tables for local runs.
    init_db()
    yield


app = FastAPI(title="Homevest API", lifespan=lifespan)
app.state.limiter = limiter

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(portfolio_router, prefix="/portfolio", tags=["portfolio"])
app.include_router(media_router, prefix="/media", tags=["media"])
app.include_router(order_router, prefix="/order", tags=["order"])
app.include_router(plaid_router, prefix="/plaid", tags=["plaid"])
app.include_router(paypal_router, prefix="/paypal", tags=["paypal"])
app.include_router(dividend_router, prefix="/dividend", tags=["dividend"])
app.include_router(wallet_router, prefix="/wallet", tags=["wallet"])
app.include_router(payment_router, prefix="/payment", tags=["payment"])
app.include_router(user_router, prefix="/users", tags=["users"])


@app.get("/health")
def health():
    return {"status": "ok"}
