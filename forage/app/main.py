"""
Forage - command-line entry point

Subcommands:
    forage mcp        MCP server on stdio, with the plugin bridge on loopback
    forage http       HTTP status app (health, bridge status, command relay)
    forage sandbox    Serve a scene document to a running bridge

Logging always goes to stderr; stdout carries the MCP stdio protocol.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

import uvicorn

from forage.app.routes.bridge import create_app
from forage.app.routes.mcp_tools import create_mcp_server
from forage.app.services.bridge.plugin_bridge import PluginBridge
from forage.app.services.sandbox.client import SandboxClient
from forage.app.services.scene.document import SceneDocument
from forage.app.shared.config import ForageSettings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )


def build_parser(settings: ForageSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forage",
        description="Progressive scene-graph inspection for design files",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Root log level (default: INFO)")
    parser.add_argument("--ws-host", default=settings.ws_host, help="Bridge host (default: 127.0.0.1)")
    parser.add_argument("--ws-port", type=int, default=settings.ws_port, help="Bridge port (default: 18412)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    mcp_parser = subparsers.add_parser("mcp", help="Run the MCP server on stdio")
    mcp_parser.add_argument(
        "--timeout",
        type=float,
        default=settings.request_timeout,
        help="Per-request timeout in seconds (default: 10)",
    )

    http_parser = subparsers.add_parser("http", help="Run the HTTP status app")
    http_parser.add_argument(
        "--timeout",
        type=float,
        default=settings.request_timeout,
        help="Per-request timeout in seconds (default: 10)",
    )
    http_parser.add_argument("--port", type=int, default=settings.http_port, help="HTTP port (default: 18413)")

    sandbox_parser = subparsers.add_parser("sandbox", help="Serve a scene document to the bridge")
    sandbox_parser.add_argument(
        "--document",
        default=settings.document_path,
        required=not bool(settings.document_path),
        help="Scene document export (.json, .yaml)",
    )
    sandbox_parser.add_argument("--url", default=None, help="Bridge URL (default: ws://<ws-host>:<ws-port>)")
    sandbox_parser.add_argument(
        "--reconnect-max-delay",
        type=float,
        default=settings.reconnect_max_delay,
        help="Reconnect backoff cap in seconds (default: 30)",
    )

    return parser


def run_mcp(args: argparse.Namespace) -> None:
    bridge = PluginBridge(host=args.ws_host, port=args.ws_port, request_timeout=args.timeout)
    logger.info(f"Starting forage MCP server (bridge on ws://{args.ws_host}:{args.ws_port})")
    create_mcp_server(bridge).run()


def run_http(args: argparse.Namespace) -> None:
    bridge = PluginBridge(host=args.ws_host, port=args.ws_port, request_timeout=args.timeout)
    logger.info(f"Starting forage HTTP status app on 127.0.0.1:{args.port}")
    uvicorn.run(
        create_app(bridge),
        host="127.0.0.1",
        port=args.port,
        log_level=args.log_level.lower(),
    )


def run_sandbox(args: argparse.Namespace) -> None:
    document = SceneDocument.load(args.document)
    url = args.url or f"ws://{args.ws_host}:{args.ws_port}"
    client = SandboxClient(document, url, reconnect_max_delay=args.reconnect_max_delay)

    # Handle graceful shutdown
    loop = asyncio.new_event_loop()

    def shutdown(sig):
        logger.info(f"Received {sig.name}, shutting down...")
        loop.create_task(client.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: shutdown(s))

    try:
        loop.run_until_complete(client.run())
    finally:
        loop.close()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point"""
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "mcp":
        run_mcp(args)
    elif args.command == "http":
        run_http(args)
    elif args.command == "sandbox":
        run_sandbox(args)


if __name__ == "__main__":
    main()
