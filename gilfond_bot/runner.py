"""Top level of a bot run: browser lifetime, run sequence and the CLI."""
from __future__ import annotations

import argparse
import dataclasses
import logging
import traceback
from contextlib import contextmanager
from dataclasses import dataclass

from selenium.common.exceptions import WebDriverException

from .browser import build_driver
from .config import load_settings
from .discovery import DiscoveryResult, DiscoveryRun, random_delay
from .errors import ConfigError
from .notify import build_notifier, failure_message
from .portal import GilfondPortal
from .priorities import PriorityReconciler, ReconcileResult
from .seen_store import SeenStore
from .session_cache import SessionCache

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    logged_in: bool
    discovery: DiscoveryResult
    priorities: ReconcileResult


@contextmanager
def portal_session(settings, sessions, driver_factory=build_driver):
    """
    Yield a GilfondPortal on a fresh Chrome. Whatever happens inside, take a
    screenshot + HTML dump, save the cookie jar and quit the browser.
    """
    driver = driver_factory(headless=settings.headless)
    portal = GilfondPortal(driver, settings.screens_dir)
    tag = "run"
    try:
        yield portal
    except BaseException:
        tag = "failure"
        raise
    finally:
        portal.capture_diagnostics(tag)
        try:
            sessions.save(sessions.capture(portal))
        except (WebDriverException, OSError) as e:
            logger.warning("Could not save session: %s", e)
        try:
            driver.quit()
        except WebDriverException:
            pass


def run_once(settings, notifier, open_portal=portal_session, delay=None) -> RunResult:
    """Log in, file requests for new flats, then fix request priorities."""
    if delay is None:
        delay = random_delay(settings.max_delay)
    sessions = SessionCache(settings.session_path)
    seen = SeenStore(settings.seen_path, settings.seen_ttl)
    seen.load()
    try:
        with open_portal(settings, sessions) as portal:
            logged_in = sessions.ensure_login(portal, settings.credentials)
            discovery = DiscoveryRun(
                portal,
                seen,
                notifier,
                rooms=settings.rooms,
                program=settings.program,
                delay=delay,
            ).run()
            priorities = PriorityReconciler(portal, max_rounds=settings.priority_max_rounds).run()
    except BaseException:
        # the run failure is what gets reported, not a failed save after it
        try:
            seen.persist()
        except OSError as e:
            logger.error("Could not save seen rows: %s", e)
        raise
    seen.persist()
    return RunResult(logged_in=logged_in, discovery=discovery, priorities=priorities)


def login_only(settings, open_portal=portal_session) -> bool:
    """Make sure a valid session is cached; used on first setup."""
    sessions = SessionCache(settings.session_path)
    with open_portal(settings, sessions) as portal:
        logged_in = sessions.ensure_login(portal, settings.credentials)
    logger.info("Session saved to %s", settings.session_path)
    return logged_in


def build_parser():
    parser = argparse.ArgumentParser(
        prog="gilfond_bot",
        description="File requests for new flats on gilfondrt.ru and set their priorities.",
    )
    parser.add_argument("command", nargs="?", choices=("run", "login"), default="run")
    parser.add_argument("--config", help="optional config.toml; GF_* variables override it")
    parser.add_argument("--headed", action="store_true", help="show the browser window")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logger.error("%s", e)
        return 1
    if args.headed:
        settings = dataclasses.replace(settings, headless=False)

    notifier = build_notifier(settings)
    try:
        if args.command == "login":
            login_only(settings)
        else:
            result = run_once(settings, notifier)
            logger.info(
                "Done: %d flat(s) added, %d priority round(s)",
                len(result.discovery.added),
                result.priorities.rounds,
            )
    except Exception as e:
        logger.exception("Run failed: %s", e)
        notifier.notify(failure_message(e, traceback.format_exc()))
        return 1
    return 0
