import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, intents, ledger
from .api.dependencies import close_dependencies, get_gateway
from .config import settings
from .core.ledger import initialize_from_settings
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Missing credentials raise ConfigurationError here and abort start-up
    session = initialize_from_settings(get_gateway())
    logger.info(f"Ledger session ready on {session.network.value} for operator {session.operator_account_id}")
    try:
        yield
    finally:
        await close_dependencies()
        await get_gateway().close()


# Create FastAPI app
app = FastAPI(
    title="Ledgerchat API",
    description="Conversational ledger actions: resolve chat intents and execute them on Hedera",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(intents.router, prefix="/intents", tags=["Intents"])
app.include_router(ledger.router, prefix="/ledger", tags=["Ledger"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Ledgerchat API",
        "version": "0.1.0",
        "description": "Conversational ledger actions: resolve chat intents and execute them on Hedera",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ledgerchat.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
