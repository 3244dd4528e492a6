"""ciphergate entry point.

    ciphergate -r        # one-shot registration, then exit
    ciphergate           # serve the API and listen for inbound messages
"""

import argparse
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI

from ciphergate.activation import Activator
from ciphergate.attachments import AttachmentStore
from ciphergate.config import GatewayConfig, load_config
from ciphergate.contacts import ContactDirectory
from ciphergate.errors import GatewayError
from ciphergate.history import HistoryStore
from ciphergate.listener import InboundListener
from ciphergate.notifications import NotificationCenter
from ciphergate.prompts import ConsolePrompter, Prompter
from ciphergate.registration import RegistrationState
from ciphergate.relay import MessageRelay
from ciphergate.routes import include_all_routes
from ciphergate.sinks import load_sinks_from_config
from ciphergate.transport import MessagingTransport, SignalRestTransport
from ciphergate.volume import LuksVolume, VolumeManager

log = logging.getLogger(__name__)


def build_transport(config: GatewayConfig) -> MessagingTransport:
    return SignalRestTransport(
        api_url=config.signal_api_url,
        receive_timeout=config.receive_timeout,
        poll_interval=config.poll_interval,
        request_timeout=config.request_timeout,
    )


def create_app(
    config: GatewayConfig,
    transport: Optional[MessagingTransport] = None,
    registration: Optional[RegistrationState] = None,
    notifications: Optional[NotificationCenter] = None,
) -> FastAPI:
    """Build the API app. Activation runs in the lifespan startup."""
    transport = transport or build_transport(config)
    registration = registration or RegistrationState(storage_path=config.storage_path)
    notifications = notifications or NotificationCenter(
        sinks=load_sinks_from_config(config.sinks),
        ttl=config.notification_ttl,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        activator = Activator(config, registration, transport)
        relay = MessageRelay(
            config=config,
            transport=transport,
            contacts=ContactDirectory(config),
            history=HistoryStore(max_bytes=config.history_size),
            attachments=AttachmentStore(config),
            notifications=notifications,
        )
        listener = InboundListener(
            transport,
            relay.handle_inbound,
            backoff_initial=config.listener_backoff_initial,
            backoff_max=config.listener_backoff_max,
        )
        app.state.config = config
        app.state.transport = transport
        app.state.activator = activator
        app.state.relay = relay
        app.state.listener = listener
        app.state.notifications = notifications

        await activator.activate()
        activator.start_listener(listener)

        yield
        # Shutdown
        await listener.stop()
        await notifications.close()
        await transport.close()

    app = FastAPI(title="ciphergate", lifespan=lifespan)
    include_all_routes(app)
    return app


async def run_registration(
    config: GatewayConfig,
    prompter: Prompter,
    volume: VolumeManager,
    transport: Optional[MessagingTransport] = None,
) -> str:
    transport = transport or build_transport(config)
    activator = Activator(
        config,
        RegistrationState(storage_path=config.storage_path),
        transport,
        prompter=prompter,
        volume=volume,
    )
    try:
        return await activator.register()
    finally:
        await transport.close()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="ciphergate", description="Encrypted-volume messaging gateway")
    parser.add_argument("-r", "--register", action="store_true", help="run one-shot transport registration")
    parser.add_argument("-c", "--config", type=Path, default=None, help="path to config.yaml")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(message)s"
    )

    config = load_config(args.config)
    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.register:
        volume = LuksVolume(config.mount_point, config.volume_group, config.volume_mapping)
        try:
            number = asyncio.run(run_registration(config, ConsolePrompter(), volume))
        except GatewayError as e:
            log.error(e.message)
            sys.exit(1)
        log.info(f"Registered {number}, restart without -r to start the gateway")
        sys.exit(0)

    log.info(f"ciphergate starting on {config.host}:{config.port}")
    log.info(f"Storage mount point: {config.mount_point}")
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
