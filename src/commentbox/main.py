"""Application entry point for the commentbox backend server."""

from commentbox.app import App
from commentbox.config import Config
from commentbox.core.modules.realtime.notifier import WebSocketNotifier
from commentbox.logging import setup_logging
from commentbox.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    notifier = WebSocketNotifier()
    app = App(config, notifier)
    run_server(app, notifier, config)


if __name__ == "__main__":
    main()
