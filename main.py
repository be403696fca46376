#!/usr/bin/env python3
"""
Handoff Relay - bridges a no-code platform's handoff codes to Supabase sessions.
"""

import argparse
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)


def show_config() -> None:
    """Print the effective configuration without secrets."""
    from relay.auth.config import load_relay_config

    cfg = load_relay_config()
    print(f"Redeem URL:        {cfg.redeem_url}")
    print(f"Shared secret:     {'set' if cfg.shared_secret else 'NOT SET (every handoff will fall back)'}")
    print(f"Redeem timeout:    {cfg.redeem_timeout_seconds:.1f}s")
    print(f"ID token provider: {cfg.id_token_provider}")
    print(f"Fallback path:     {cfg.fallback_path}")
    print(f"Default next path: {cfg.default_next_path}")
    print(f"Public base URL:   {cfg.public_base_url or '(request origin)'}")
    print(f"Session provider:  {cfg.supabase_url or 'NOT CONFIGURED'}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Authentication handoff relay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the relay
  python main.py --serve --port 8080

  # Show effective configuration
  python main.py --show-config
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the HTTP relay server")
    parser.add_argument("--show-config", action="store_true", help="Print effective configuration (no secrets)")
    parser.add_argument("--host", default="0.0.0.0", help="Server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Server listen port (default: 8080)")

    args = parser.parse_args()

    try:
        if args.show_config:
            show_config()
            return

        if args.serve:
            from relay.api.server import run

            run(host=args.host, port=args.port)
            return

        parser.print_help()

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        raise


if __name__ == "__main__":
    main()
