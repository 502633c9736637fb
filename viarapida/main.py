# viarapida/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from viarapida.database import get_store
from viarapida.exception_handlers import register_exception_handlers
from viarapida.exceptions import StoreUnavailable
from viarapida.logging_config import setup_logging
from viarapida.routes import auth, reservations, trips

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await get_store().ensure_indexes()
    except StoreUnavailable as exc:
        logger.error(f"Could not ensure indexes at startup: {exc.message}")
    yield


app = FastAPI(title="Vía Rápida Booking Service", lifespan=lifespan)
register_exception_handlers(app)

# Include routers with appropriate prefixes
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(trips.router, prefix="/trips", tags=["Trips"])
app.include_router(reservations.router, prefix="/reservations", tags=["Reservations"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
