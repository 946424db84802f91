from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from src.config import settings
from src.database import init_db
from src.exceptions import register_exception_handlers
from src.logging_config import setup_logging
from src.bookings import router as bookings_router, callback_router, invoice_router
from src.reviews import router as reviews_router

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
    yield

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Tour booking API with SSLCommerz payments",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(
    bookings_router,
    prefix=f"{settings.API_PREFIX}/booking",
    tags=["Bookings"]
)

app.include_router(
    callback_router,
    prefix=f"{settings.API_PREFIX}/booking",
    tags=["Payment Callbacks"]
)

# Legacy /payment prefix for the same callbacks
app.include_router(
    callback_router,
    prefix=f"{settings.API_PREFIX}/payment",
    tags=["Payment Callbacks"],
    include_in_schema=False
)

app.include_router(
    invoice_router,
    prefix=f"{settings.API_PREFIX}/invoice",
    tags=["Invoices"]
)

app.include_router(
    reviews_router,
    prefix=f"{settings.API_PREFIX}/review",
    tags=["Reviews"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Welcome to the Trips & Travels API!",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3050)
