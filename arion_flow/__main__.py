import uvicorn

from arion_flow.config import settings


def main():
    uvicorn.run(
        "arion_flow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
