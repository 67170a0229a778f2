#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse
import logging
import sys

from .app import NewsPulseApp
from .client import NewsClient
from .config import load_config, setup_logging
from .errors import InvalidIdentity

logger = logging.getLogger("news_pulse")


# --- Entrypoint ---
def main() -> None:
    parser = argparse.ArgumentParser(description="News Pulse alert client")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--theme", type=str, help="Set theme for this run")
    parser.add_argument("--api-url", type=str, help="Override the API base URL")
    parser.add_argument("--email", type=str, help="Sign in with this email at start-up")
    args = parser.parse_args()

    debug_path = setup_logging(args.debug)
    if debug_path:
        print(f"Debug logging enabled: {debug_path}", file=sys.stderr)

    config = load_config()
    if args.api_url:
        config["api_base_url"] = args.api_url
    theme_name = args.theme or config.get("theme")

    client = NewsClient.from_config(config)
    if args.email:
        try:
            client.session.sign_in(args.email)
        except InvalidIdentity as e:
            print(e.message, file=sys.stderr)
            sys.exit(2)

    logger.info("Using API %s", client.gateway.base_url)

    try:
        app = NewsPulseApp(client, theme=theme_name)
        app.run()
    except Exception as e:
        logger.exception("Application crashed: %s", e)
        print(f"Application crashed: {e}", file=sys.stderr)


if __name__ == "__main__":
    main()
