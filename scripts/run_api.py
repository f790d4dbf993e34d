"""
Start the VoteWatch API server.

Responsibility: Local API entry point
"""

import uvicorn

from votewatch.config import settings


if __name__ == "__main__":
    print("Starting VoteWatch API Server...")
    print(f"API will be available at: http://localhost:{settings.app.api_port}")
    print(f"Swagger docs at: http://localhost:{settings.app.api_port}/docs")
    print("\nPress CTRL+C to stop\n")
    
    uvicorn.run(
        "api.main:app",
        host=settings.app.api_host,
        port=settings.app.api_port,
        reload=settings.app.debug,
        log_level=settings.app.log_level.lower()
    )
