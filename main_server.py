#!/usr/bin/env python3
"""
NetQuiz Server - Main Entry Point

Unified entry point for the server application that integrates:
- Quiz delivery
- File sharing
- Real-time chat and user presence
- UDP notifications

Usage:
    python main_server.py

Optional arguments:
    --host HOST                Bind address (default: 0.0.0.0)
    --port PORT                Main TCP port (default: 5002)
    --notification-port PORT   UDP notification port (default: 5003)
    --broadcast-address ADDR   UDP broadcast address (default: 255.255.255.255)
    --files-dir DIR            Shared files directory (default: server_files)
    --quizzes-file FILE        Quiz storage (default: quizzes.json)
    --logs-dir DIR             Chat and transfer logs (default: logs)
    --idle-timeout SECONDS     Drop chat sessions idle this long (default: never)
"""

import argparse
import asyncio

from netquiz.common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, DEFAULT_NOTIFICATION_PORT, BROADCAST_ADDRESS,
    FILES_DIR, QUIZZES_FILE, LOG_DIR
)
from netquiz.server.main_server import NetQuizServer
from netquiz.server.utils.config import ServerConfig
from netquiz.server.utils.logger import logger


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='NetQuiz LAN Server')
    parser.add_argument('--host', type=str, default=DEFAULT_SERVER_HOST,
                        help=f'Host to bind to (default: {DEFAULT_SERVER_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                        help=f'TCP port for main server (default: {DEFAULT_PORT})')
    parser.add_argument('--notification-port', type=int, default=DEFAULT_NOTIFICATION_PORT,
                        help=f'UDP port for notifications (default: {DEFAULT_NOTIFICATION_PORT})')
    parser.add_argument('--broadcast-address', type=str, default=BROADCAST_ADDRESS,
                        help=f'UDP broadcast address (default: {BROADCAST_ADDRESS})')
    parser.add_argument('--files-dir', type=str, default=FILES_DIR,
                        help=f'Directory for shared files (default: {FILES_DIR})')
    parser.add_argument('--quizzes-file', type=str, default=QUIZZES_FILE,
                        help=f'Quiz storage file (default: {QUIZZES_FILE})')
    parser.add_argument('--logs-dir', type=str, default=LOG_DIR,
                        help=f'Directory for chat and transfer logs (default: {LOG_DIR})')
    parser.add_argument('--idle-timeout', type=float, default=None,
                        help='Seconds before an idle chat session is dropped (default: never)')
    return parser.parse_args(argv)


async def run_server(config: ServerConfig):
    server = NetQuizServer(config)
    try:
        await server.serve_forever()
    finally:
        await server.stop()


def main(argv=None):
    args = parse_args(argv)
    config = ServerConfig(
        host=args.host,
        port=args.port,
        notification_port=args.notification_port,
        broadcast_address=args.broadcast_address,
        files_dir=args.files_dir,
        quizzes_file=args.quizzes_file,
        logs_dir=args.logs_dir,
        idle_timeout=args.idle_timeout
    )

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except OSError as e:
        logger.log_error("server", e)


if __name__ == "__main__":
    main()
