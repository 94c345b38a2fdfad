"""Run the development server: ``python -m agentic.server``."""

from __future__ import annotations

import argparse

from agentic.config import AppSettings
from agentic.logging import configure_logging

from .app import create_app


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Serve the agentic chat session API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=5000)
    p.add_argument("--debug", action="store_true")
    return p.parse_args()


def main() -> None:
    args = parse_args()
    settings = AppSettings.from_env()
    configure_logging(settings.log_level, settings.log_format)
    app = create_app(settings)
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
