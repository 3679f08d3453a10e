"""Application entry point for the keyward server."""

import structlog

from keyward.app import App
from keyward.config import Config
from keyward.logging import setup_logging
from keyward.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    structlog.get_logger(__name__).info(
        "keyward_starting",
        host=config.host,
        port=config.port,
        session_ip_binding=config.session_ip_binding,
    )
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
