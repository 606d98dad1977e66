"""
Run the server:  python -m messaging_auth [--host H] [--port P]

Host/port default to VECTOR_HOST / VECTOR_PORT.
"""

import argparse
import logging

import uvicorn

from .config import get_settings
from .main import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="messaging_auth", description="Messaging auth token server")
    parser.add_argument("--host", default=None, help="bind address (default: VECTOR_HOST)")
    parser.add_argument("--port", type=int, default=None, help="bind port (default: VECTOR_PORT)")
    return parser


def main(argv=None) -> None:
    # arguments first: --help must work without any VECTOR_* configuration
    args = build_parser().parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    host = args.host or settings.HOST
    port = args.port if args.port is not None else settings.PORT
    app = create_app(settings)
    uvicorn.run(app, host=host, port=port, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
