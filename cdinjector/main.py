"""
Local companion server for the CD Injector Chrome extension.

Serves override scripts and styles from a local development server to the
extension over the WebSocket gateway.
"""

from __future__ import annotations

import logging
import os
import time

from .config import InjectorConfig
from .dispatch import dispatch_event
from .extension_gateway import ExtensionGateway
from .http_client import LocalServerClient
from .injector import CDInjector

logger = logging.getLogger("cdinjector")


def build_injector(config: InjectorConfig) -> tuple[CDInjector, ExtensionGateway]:
    """Wire the fetcher, gateway and injector together (gateway not started)."""
    client = LocalServerClient(config)
    gateway = ExtensionGateway(
        host=config.gateway_host,
        port=config.gateway_port,
        expected_extension_id=config.extension_id,
    )
    injector = CDInjector(
        client.fetch,
        gateway,
        gateway,
        max_include_depth=config.max_include_depth,
    )
    gateway.on_event = lambda msg: dispatch_event(injector, msg)
    return injector, gateway


def main() -> None:
    logging.basicConfig(
        level=logging.DEBUG if os.environ.get("CDINJECTOR_TRACE") == "1" else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    config = InjectorConfig.from_env()
    _injector, gateway = build_injector(config)
    try:
        gateway.start()
    except RuntimeError as e:
        logger.error("extension_gateway_start_failed: %s", e)
        raise SystemExit(1) from e

    logger.info(
        "serving overrides from %s via ws://%s:%s",
        config.server_url,
        gateway.host,
        gateway.port,
    )
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        gateway.stop()


if __name__ == "__main__":
    main()
