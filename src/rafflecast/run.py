#!/usr/bin/env python3
"""
RaffleCast - Live Raffle Drawing Control

Main entry point for running the full application.
Loads participants from storage and serves the operator API and the
audience display.
"""

import argparse
import logging
import sys

from .config import load_config, set_config
from .core.draw import DrawMachine
from .core.errors import LicenseBlocked, RaffleError, StorageError
from .core.license import StaticLicenseProvider, require_active_license
from .core.show import ShowController
from .core.state import ShowState
from .db.database import Database
from .output.caspar import CasparClient, MockCasparClient
from .simulator.fake_roster import FakeRosterExport
from .sync.socketio_channel import SocketIOChannel
from .web.app import create_app, socketio


def setup_logging(debug: bool = False):
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )


def seed_demo_roster(controller: ShowController, logger: logging.Logger) -> None:
    """Import a fake form export when the roster is empty."""
    if controller.state.roster:
        return
    export = FakeRosterExport(participants=50, seed=42)
    try:
        stats = controller.import_roster(export.to_csv(), "demo.csv")
    except RaffleError as e:
        logger.error(f"Could not seed demo roster: {e}")
        return
    logger.info(
        f"Seeded demo roster: {stats.total_valid} participants, "
        f"{stats.duplicates} duplicates, {stats.no_name} without name"
    )


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="RaffleCast - Live Raffle Drawing Control"
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to config file",
        default=None
    )
    parser.add_argument(
        "--simulate", "-s",
        action="store_true",
        help="Run with a demo roster when none is loaded"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Web server port (default: 8080)",
        default=None
    )
    parser.add_argument(
        "--no-caspar",
        action="store_true",
        help="Disable CasparCG connection"
    )
    parser.add_argument(
        "--db",
        help="Path to the SQLite database (default: platform data directory)",
        default=None
    )

    args = parser.parse_args(argv)

    # Load configuration
    config = load_config(args.config)

    # Apply command line overrides
    if args.debug:
        config.debug = True
    if args.port:
        config.web.port = args.port
    if args.no_caspar:
        config.caspar.enabled = False
    if args.db:
        config.storage.db_path = args.db

    set_config(config)

    # Setup logging
    setup_logging(config.debug)
    logger = logging.getLogger("rafflecast")

    logger.info("=" * 50)
    logger.info("RaffleCast - Live Raffle Drawing Control")
    logger.info("=" * 50)

    # The control surface only starts for an operator with an active license
    try:
        operator = require_active_license(StaticLicenseProvider(config.operator))
    except LicenseBlocked as e:
        logger.error(f"{e}. Contact support to reactivate.")
        return 1
    logger.info(f"Operator: {operator.name}")

    # Setup CasparCG client
    if config.caspar.enabled:
        caspar_client = CasparClient()
        if caspar_client.connect():
            logger.info("Connected to CasparCG")
        else:
            logger.warning("Could not connect to CasparCG")
    else:
        caspar_client = MockCasparClient()
        logger.info("CasparCG disabled, using mock client")

    # Initialize components
    db = Database(config.storage.db_path)
    state = ShowState()
    channel = SocketIOChannel(socketio, config.sync.channel)
    machine = DrawMachine(
        state,
        channel,
        storage=db,
        effects=caspar_client,
        settings=config.draw
    )
    controller = ShowController(state, machine, storage=db)

    try:
        controller.load()
    except StorageError as e:
        logger.error(f"Could not load saved data: {e}")

    if args.simulate:
        logger.info("Starting in SIMULATION mode")
        seed_demo_roster(controller, logger)

    # Create and run web app
    app = create_app(controller)
    machine.schedule_catchup(config.sync.catchup_delay)

    logger.info(f"Starting web server on http://{config.web.host}:{config.web.port}")
    logger.info(f"Audience display: http://{config.web.host}:{config.web.port}/display")
    logger.info("Press Ctrl+C to stop")

    try:
        socketio.run(
            app,
            host=config.web.host,
            port=config.web.port,
            debug=False,  # Disable Flask debug to prevent double-start
            use_reloader=False,
            allow_unsafe_werkzeug=True
        )
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        machine.shutdown()
        channel.close()
        caspar_client.disconnect()

    logger.info("RaffleCast stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
