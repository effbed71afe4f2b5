import asyncio
import logging

import uvicorn

from parking_service.app.crud.parking.lifecycle_sweep import run_lifecycle_sweep
from parking_service.app.main import app
from shared.core.config import settings
from shared.core.database import ParkingSessionLocal

logger = logging.getLogger("run_services")


def sweep_once():
    db = ParkingSessionLocal()
    try:
        run_lifecycle_sweep(db)
    finally:
        db.close()


async def run_sweeps():
    while True:
        try:
            await asyncio.to_thread(sweep_once)
        except Exception:
            logger.exception("Lifecycle sweep failed")
        await asyncio.sleep(settings.SWEEP_INTERVAL_SECONDS)


async def start_servers():
    config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=8002,
        reload=False,
    )
    server = uvicorn.Server(config)

    # API and the periodic overstay/reconcile sweep side by side
    await asyncio.gather(
        server.serve(),
        run_sweeps(),
    )

if __name__ == "__main__":
    try:
        asyncio.run(start_servers())
    except KeyboardInterrupt:
        print("\nShutting down servers...")
