"""Run the server: `python -m game.server` (host/port from GAME_HOST/GAME_PORT)."""

import uvicorn

from game.server.settings import GameServerSettings


def main() -> None:  # pragma: no cover
    settings = GameServerSettings()
    uvicorn.run(
        "game.server.app:get_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
