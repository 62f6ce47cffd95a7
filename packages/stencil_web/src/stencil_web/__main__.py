import uvicorn
from stencil_core import StencilSettings


def main() -> None:
    settings = StencilSettings()
    uvicorn.run(
        "stencil_web.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
