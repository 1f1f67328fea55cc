#!/usr/bin/env python3
"""
Unified CLI entrypoint with subcommands.
"""

import argparse
import asyncio
import getpass
import json
import sys
from pathlib import Path
from typing import List, Optional

from bs4 import BeautifulSoup

from vrc_world_opener.core.config import ConfigManager
from vrc_world_opener.core.errors import WorldOpenerError
from vrc_world_opener.core.logging import setup_logger
from vrc_world_opener.core.storage.settings_store import SettingsStore
from vrc_world_opener.feed.controls import ActionController
from vrc_world_opener.feed.scanner import FeedScanner
from vrc_world_opener.vrchat_api.client import VRChatClient


def _client(cfg: ConfigManager, store: SettingsStore) -> VRChatClient:
    return VRChatClient(cfg.api, store=store)


def cmd_scan(args, cfg: ConfigManager, store: SettingsStore) -> int:
    path = Path(args.file)
    if not path.exists():
        print(f"File not found: {path}")
        return 1
    document = BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")
    settings = store.read_settings()
    controller = ActionController(_client(cfg, store), web_base=cfg.opener.web_base)
    scanner = FeedScanner(controller, settings, cfg.opener)
    report = scanner.scan(document, settings)

    rows = []
    for entry in scanner.registry:
        if entry.group is None:
            continue
        rows.append({
            "references": [{"kind": r.kind, "value": r.value} for r in entry.references],
            "controls": [c.kind for c in entry.group.controls],
        })

    if args.json:
        print(json.dumps({"report": vars(report), "posts": rows}, ensure_ascii=False, indent=2))
    else:
        print(f"Posts: {report.seen}  processed: {report.processed}  with controls: {report.attached}  failed: {report.failed}")
        for row in rows:
            refs = ", ".join(f"{r['kind']}={r['value']}" for r in row["references"])
            print(f"  - {refs}  [{'+'.join(row['controls'])}]")
    if args.output:
        Path(args.output).write_text(str(document), encoding="utf-8")
        print(f"Annotated HTML written to {args.output}")
    return 0


def cmd_watch(args, cfg: ConfigManager, store: SettingsStore) -> int:
    from vrc_world_opener.browser.driver import BrowserManager
    from vrc_world_opener.browser.live_feed import LiveFeedBridge

    browser_settings = cfg.browser.model_copy(update={
        k: v for k, v in {"headless": args.headless or None, "profile_dir": args.profile_dir}.items() if v
    })
    driver = BrowserManager(browser_settings).create_driver()
    controller = ActionController(
        _client(cfg, store),
        reset_delay=cfg.opener.reset_delay_seconds,
        web_base=cfg.opener.web_base,
    )
    bridge = LiveFeedBridge(driver, store, controller, cfg.opener)
    try:
        asyncio.run(bridge.run(args.url or browser_settings.start_url))
    except KeyboardInterrupt:
        print("Stopped.")
    finally:
        driver.quit()
    return 0


def cmd_login(args, cfg: ConfigManager, store: SettingsStore) -> int:
    client = _client(cfg, store)
    username = args.username or cfg.api.username or input("VRChat username: ")
    password = cfg.api.password or getpass.getpass("VRChat password: ")
    result = client.login(username, password)
    if result.requires_2fa:
        code = input(f"Two-factor code ({', '.join(result.two_factor_types)}): ")
        result = client.verify_2fa(code, result.two_factor_types)
    if not result.success:
        print(f"Login failed: {result.error}")
        return 1
    print(f"Logged in as {store.display_name or username}")
    return 0


def cmd_logout(args, cfg: ConfigManager, store: SettingsStore) -> int:
    result = _client(cfg, store).logout()
    print("Logged out." if result.success else f"Logout failed: {result.error}")
    return 0 if result.success else 1


def cmd_status(args, cfg: ConfigManager, store: SettingsStore) -> int:
    status = _client(cfg, store).check_authentication()
    settings = store.read_settings()
    if status.authenticated:
        name = (status.user or {}).get("displayName") or store.display_name
        print(f"Authenticated as {name}")
    else:
        print("Not authenticated" + (f" ({status.error})" if status.error else ""))
    print(json.dumps(settings.to_storage(), indent=2))
    return 0


def cmd_settings(args, cfg: ConfigManager, store: SettingsStore) -> int:
    changes = {
        key: value
        for key, value in (
            ("enabled", args.enabled),
            ("show_open_control", args.open),
            ("show_search_control", args.search),
        )
        if value is not None
    }
    settings = store.update_settings(**changes) if changes else store.read_settings()
    print(json.dumps(settings.to_storage(), indent=2))
    return 0


def cmd_search(args, cfg: ConfigManager, store: SettingsStore) -> int:
    result = _client(cfg, store).search_world(args.name)
    if result.success:
        print(f"{result.world_name} -> {result.world_id}")
        return 0
    if result.needs_auth:
        print("Login required: run `vrc-world-opener login` first.")
    elif result.not_found:
        print("No world found.")
    else:
        print(f"Search failed: {result.error}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vrc-world-opener", description="Detect VRChat worlds in feed posts")
    parser.add_argument("--settings-path", help="Path of the toggle settings JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a saved timeline HTML file")
    scan.add_argument("file")
    scan.add_argument("--json", action="store_true", help="Print machine-readable output")
    scan.add_argument("--output", help="Write the annotated HTML here")
    scan.set_defaults(func=cmd_scan)

    watch = sub.add_parser("watch", help="Open the feed in Chrome and attach controls live")
    watch.add_argument("--url", help="Feed URL (default from config)")
    watch.add_argument("--headless", action="store_true")
    watch.add_argument("--profile-dir", help="Chrome user data dir to keep the feed login")
    watch.set_defaults(func=cmd_watch)

    login = sub.add_parser("login", help="Log in to VRChat")
    login.add_argument("--username")
    login.set_defaults(func=cmd_login)

    sub.add_parser("logout", help="Log out of VRChat").set_defaults(func=cmd_logout)
    sub.add_parser("status", help="Show login state and toggles").set_defaults(func=cmd_status)

    settings = sub.add_parser("settings", help="Show or change toggles")
    settings.add_argument("--enable", dest="enabled", action="store_true", default=None)
    settings.add_argument("--disable", dest="enabled", action="store_false")
    settings.add_argument("--open", dest="open", action="store_true", default=None)
    settings.add_argument("--no-open", dest="open", action="store_false")
    settings.add_argument("--search", dest="search", action="store_true", default=None)
    settings.add_argument("--no-search", dest="search", action="store_false")
    settings.set_defaults(func=cmd_settings)

    search = sub.add_parser("search", help="Look up a world id by name")
    search.add_argument("name")
    search.set_defaults(func=cmd_search)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger("vrc_world_opener.cli")
    try:
        cfg = ConfigManager().load_all()
    except WorldOpenerError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    store = SettingsStore(args.settings_path or cfg.settings_path)
    try:
        return args.func(args, cfg, store)
    except WorldOpenerError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
