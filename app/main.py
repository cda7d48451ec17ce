from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import get_settings
from app.core.exceptions import ClinicError
from app.core.logger import get_logger
from app.core.scheduler import start_scheduler, shutdown_scheduler
from app.database import Base, engine
from app.models import user, appointment, notification, payment  # noqa: F401  register tables
from app.routers import appointments, dashboard, notifications, payments

logger = get_logger(__name__)
settings = get_settings()

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

# Include routers
app.include_router(appointments.router)
app.include_router(dashboard.router)
app.include_router(notifications.router)
app.include_router(payments.router)

# Start the scheduler
@app.on_event("startup")
async def startup_event():
    start_scheduler()

@app.on_event("shutdown")
async def shutdown_event():
    shutdown_scheduler()

@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}"}

@app.get("/health")
async def health():
    return {"status": "ok"}
