import uvicorn

from shorturl.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "shorturl.main:app",
        host=settings.bind_host,
        port=settings.bind_port,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
