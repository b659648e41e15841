"""Run the permit decision API server."""

import uvicorn

from permitto.api.config import Settings

if __name__ == "__main__":
    settings = Settings()
    uvicorn.run(
        "permitto.api:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
