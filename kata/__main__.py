import uvicorn

from kata.core import config


def main() -> None:
    uvicorn.run(
        "kata.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.RELOAD,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
