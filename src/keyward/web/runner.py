"""Uvicorn server runner for the keyward API."""

import copy

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from keyward.app import App
from keyward.config import Config
from keyward.web.server import create_fastapi_app


def run_server(app: App, config: Config) -> None:
    """Run the Uvicorn server with keyward's log format.

    Client addresses are read from X-Forwarded-For by the session layer, so
    uvicorn is told not to rewrite the peer address from proxy headers.
    """
    fastapi_app = create_fastapi_app(app, config)

    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = (
        '%(asctime)s keyward.access %(client_addr)s "%(request_line)s" %(status_code)s'
    )
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s keyward.%(levelname)s %(message)s"

    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=log_config,
        access_log=config.debug,
        proxy_headers=False,
    )
