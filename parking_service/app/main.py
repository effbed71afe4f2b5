from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core.database import parking_engine, Base
from shared.core.logging_config import setup_logging

from .core.exception_handler import setup_exception_handlers
from .models.parking import bookings, organizations, parking_lots, reconciliation_logs
from .router.parking import bookings_router, occupancy_router, organizations_router, parking_lots_router

setup_logging()

app = FastAPI(title="Parking Service API")

# Create all tables
Base.metadata.create_all(bind=parking_engine)

# Allow requests from your React app
origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8002"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
setup_exception_handlers(app)

# Include routers
app.include_router(organizations_router.router)
app.include_router(parking_lots_router.router)
app.include_router(bookings_router.router)
app.include_router(occupancy_router.router)


@app.get("/api/parking/health")
def health():
    return {"status": "healthy"}
