#!/usr/bin/env python3
"""
Taco's Task Manager - session-gated Kanban board.
"""

import argparse
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)


def show_config() -> None:
    """Print which sign-in methods the current environment enables (no secrets)."""
    import json

    from taskboard.auth.config import load_auth_config
    from taskboard.board.config import load_board_config

    cfg = load_auth_config()
    board_cfg = load_board_config()
    print(
        json.dumps(
            {
                "providerEnabled": cfg.provider_enabled,
                "emulator": cfg.firebase_emulator_host,
                "twoStepEnabled": cfg.two_step_enabled,
                "phoneEnabled": cfg.phone_enabled,
                "redirectEnabled": cfg.redirect_enabled,
                "googleEnabled": cfg.google_enabled,
                "oidcProviderId": cfg.oidc_provider_id,
                "cookieSecure": cfg.cookie_secure,
                "boardMaxViews": board_cfg.max_views,
            },
            indent=2,
        )
    )


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Serve the task board",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve on the default port
  python main.py

  # Local development over plain HTTP
  AUTH_COOKIE_SECURE=false python main.py --port 3000
        """,
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Listen port (default: 8080)")
    parser.add_argument(
        "--show-config", action="store_true", help="Print the effective auth/board configuration and exit"
    )

    args = parser.parse_args()

    if args.show_config:
        show_config()
        return

    from taskboard.api.app import run

    run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
