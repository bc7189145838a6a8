"""Start the API with uvicorn on the configured host and port."""
import logging
import uvicorn
from seva_kendra.config import settings
from seva_kendra.main import app, ENDPOINTS

logger = logging.getLogger("seva_kendra.server")


def run():
    logger.info("Server starting on %s:%s", settings.HOST, settings.PORT)
    logger.info("Health check: http://localhost:%s/health", settings.PORT)
    for route in ENDPOINTS.values():
        logger.info("  %s", route)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())

if __name__ == '__main__':
    run()
