"""Run the session lifecycle FastAPI application with uvicorn."""

import uvicorn

from tutor_sessions.application.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "tutor_sessions.application.api:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
