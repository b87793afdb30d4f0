"""
main.py - Main entry point for the relay.
Initializes logging and runs the relay lifecycle until a shutdown signal.
"""

import asyncio

from whatsrelay.core.lifecycle import RelayLifecycle
from whatsrelay.core.logger_setup import setup_logging
from whatsrelay.core.settings import settings as global_settings
from whatsrelay.utils.signals import install_handlers, remove_handlers


async def main() -> None:
    setup_logging()
    lifecycle = RelayLifecycle(settings=global_settings)

    loop = asyncio.get_running_loop()
    installed = install_handlers(loop, lifecycle)
    try:
        await lifecycle.run()
    finally:
        remove_handlers(loop, installed)
