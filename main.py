#!/usr/bin/env python3
"""
fwclient - session helper for the wiki API.
Log in, inspect and drop the locally cached session, or issue an API call
through the same interceptor chain the application uses.
"""

import argparse
import getpass
import logging
import sys
from datetime import datetime
from typing import List, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep fwclient imports lazy (inside functions) so `--help` works without
# the HTTP stack installed.
#


def format_expiry(expires_at_ms: int) -> str:
    """Format an epoch-ms expiry to a compact display format."""
    try:
        return datetime.fromtimestamp(expires_at_ms / 1000).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return str(expires_at_ms)


def _runtime(start_path: str = "/"):
    import os

    from fwclient.auth.bootstrap import bootstrap_session
    from fwclient.auth.config import load_client_config
    from fwclient.auth.storage import FileStorage, MemoryStorage
    from fwclient.nav.navigator import MemoryNavigator

    cfg = load_client_config()
    storage = FileStorage(os.path.join(cfg.state_dir, "storage.json"))
    navigator = MemoryNavigator(base_path=cfg.base_path, start=start_path)
    return bootstrap_session(cfg, storage=storage, session_storage=MemoryStorage(), navigator=navigator)


def _print_redirects(rt) -> None:
    for event in getattr(rt.navigator, "history", []):
        print(f"↪ navigate: {event.href}")


def cmd_login(identity: str, password: Optional[str], *, remember: bool, current_path: str = "/profile") -> int:
    from fwclient.auth.errors import AuthenticationFailed
    from fwclient.nav.return_to import consume_expired_flag

    rt = _runtime(current_path)
    if consume_expired_flag(rt.navigator):
        print("⏳ Session expired, please log in again")
    if password is None and rt.config.uses_remote_auth:
        password = getpass.getpass("Password: ")
    try:
        profile = rt.session.login(identity, password or "", remember=remember)
    except AuthenticationFailed as e:
        print(f"❌ {e.message}", file=sys.stderr)
        return 1
    print(f"✅ Logged in as {profile.name} (id={profile.id}, mode={rt.config.auth_mode})")
    print(f"→ continue at {rt.post_login_target()}")
    return 0


def cmd_whoami() -> int:
    rt = _runtime()
    state = rt.session.state
    if not state.is_authenticated:
        print("Not logged in")
        return 1
    print(f"👤 {state.profile.name} (id={state.profile.id}, mode={state.mode})")
    kind = "local" if state.mode == "local" else "basic"
    record = rt.store.read(kind)
    if record is not None:
        print(f"⏳ Stored session expires {format_expiry(record.expires_at)}")
    return 0


def cmd_logout() -> int:
    rt = _runtime()
    rt.session.logout()
    print("👋 Logged out")
    return 0


def cmd_get(path: str, current_path: str) -> int:
    import json

    import requests

    rt = _runtime(current_path)
    try:
        data = rt.http.get_json(path)
    except requests.RequestException as e:
        print(f"❌ {e}", file=sys.stderr)
        _print_redirects(rt)
        return 1
    except ValueError:
        print("❌ Response is not JSON", file=sys.stderr)
        return 1
    print(json.dumps(data, indent=2, ensure_ascii=False))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Manage the local wiki API session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Log in (mode from FW_AUTH_MODE: local|basic|hybrid)
  python main.py --login archmagos

  # Show who is logged in
  python main.py --whoami

  # Call the API with the stored credentials
  python main.py --get /myArticles
        """,
    )

    parser.add_argument("--login", metavar="IDENTITY", help="Log in with this identity")
    parser.add_argument("--password", help="Password (prompted when omitted in basic/hybrid mode)")
    parser.add_argument(
        "--no-remember", action="store_true", help="Use the short retention window for hybrid logins"
    )
    parser.add_argument("--whoami", action="store_true", help="Restore the stored session and print the profile")
    parser.add_argument("--logout", action="store_true", help="Drop all stored credentials")
    parser.add_argument("--get", metavar="PATH", help="GET an API path through the interceptor chain")
    parser.add_argument(
        "--from-path",
        help="App path the command runs from (drives navigation decisions) (default: / for --get, /profile for --login)",
    )

    args = parser.parse_args(argv)

    try:
        if args.login:
            return cmd_login(
                args.login, args.password, remember=not args.no_remember, current_path=args.from_path or "/profile"
            )
        if args.whoami:
            return cmd_whoami()
        if args.logout:
            return cmd_logout()
        if args.get:
            return cmd_get(args.get, args.from_path or "/")

        parser.print_help()
        return 0
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        raise


if __name__ == "__main__":
    sys.exit(main())
