#!/usr/bin/env python3
"""
Certification exam engine
Startup script

Usage:
    python run.py [--port PORT] [--host HOST] [--debug]

Examples:
    python run.py
    python run.py --port 8080
    python run.py --host 0.0.0.0 --port 5000 --debug
"""

import argparse
import logging
import sys

from certexam.app import create_app
from certexam.core.config import Config


def main():
    """Start the development server"""
    parser = argparse.ArgumentParser(description='Certification exam engine')
    parser.add_argument('--host', default=Config.HOST, help=f'Host address (default: {Config.HOST})')
    parser.add_argument('--port', type=int, default=Config.PORT, help=f'Port (default: {Config.PORT})')
    parser.add_argument('--debug', action='store_true', help='Run in debug mode')

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    try:
        app = create_app()
    except Exception as e:
        logging.getLogger(__name__).error(f"Startup failed: {e}")
        sys.exit(1)

    app.logger.info(f"Starting on http://{args.host}:{args.port}")
    app.logger.info(f"Debug mode: {'ON' if args.debug else 'OFF'}")
    app.logger.info(f"Database: {app.db_manager.db_type.upper()}")

    try:
        app.run(
            host=args.host,
            port=args.port,
            debug=args.debug,
            use_reloader=args.debug
        )
    except KeyboardInterrupt:
        app.logger.info("Stopped")
        sys.exit(0)


if __name__ == '__main__':
    main()
