from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tigertix.core.config import CORS_ORIGINS
from tigertix.core.exception_handlers import register_exception_handlers
from tigertix.core.logging import setup_logging
from tigertix.routes import admin, booking, client
from tigertix.services.inventory import InventoryStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # one store per process, closed on shutdown
    app.state.store = InventoryStore.from_settings()
    try:
        yield
    finally:
        app.state.store.close()


app = FastAPI(title="TigerTix", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include the routers
app.include_router(admin.router)
app.include_router(client.router)
app.include_router(booking.router)
