"""Run the session server: ``python -m tictac.server``."""

import uvicorn

from tictac.server.settings import ServerSettings


def main() -> None:  # pragma: no cover
    settings = ServerSettings()
    uvicorn.run(
        "tictac.server.app:get_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
