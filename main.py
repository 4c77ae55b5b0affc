"""Demo entry point: buffer application logs, activate from the environment, ship."""

import logging
import signal
import sys
import threading
from dataclasses import replace

from es_appender.config import AppenderError, load_config
from es_appender.handler import ElasticsearchHandler
from es_appender.lookup import EnvironmentLookup, poll_backend_config


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)
    app_logger = logging.getLogger("app")

    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    handler = ElasticsearchHandler()
    app_logger.addHandler(handler)

    # Captured before the backend is configured; shipped on activation.
    app_logger.info("Application starting")

    cli_config = load_config(argv)
    lookup = EnvironmentLookup(
        overrides={
            key: value
            for key, value in {
                "es.url": cli_config.url,
                "es.index": cli_config.index_name,
                "es.username": cli_config.username,
                "es.password": cli_config.password,
            }.items()
            if value
        },
    )

    try:
        config = replace(
            poll_backend_config(lookup, max_retries=5),
            verify_certs=cli_config.verify_certs,
            timeout=cli_config.timeout,
        )
        handler.activate(config)
    except AppenderError as e:
        logger.error("Activation failed: %s", e)
        handler.close()
        return 1

    logger.info("Shipping logs to %s (index=%s)", config.url, config.index_name)
    heartbeat = 0
    while not shutdown_event.is_set():
        heartbeat += 1
        app_logger.info("Heartbeat %d", heartbeat)
        shutdown_event.wait(5.0)

    handler.close()
    snapshot = handler.dispatcher.metrics.snapshot()
    logger.info(
        "Appender finished: sent=%d, failed=%d, dropped=%d",
        snapshot["sent"], snapshot["failed"], snapshot["dropped"],
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
