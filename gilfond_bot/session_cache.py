"""
Cookie jar persisted between runs so the credential login is a fallback.

The portal's login form is the most fragile and rate-limited step, so a run
first replays the cookies saved by the previous run and only fills in the
case number and password when the portal still asks for them.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path

from .errors import AuthenticationError
from .models import SessionBlob
from .seen_store import utcnow

logger = logging.getLogger(__name__)

COOKIE_KEYS = ("name", "value", "domain", "path", "secure", "httpOnly", "expiry", "sameSite")


class SessionCache:
    def __init__(self, path: str | Path, clock=utcnow):
        self.path = Path(path)
        self.clock = clock

    def load(self) -> SessionBlob | None:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            cookies = [
                {k: c[k] for k in COOKIE_KEYS if k in c}
                for c in data["cookies"]
                if c.get("name")
            ]
            saved_at = data.get("saved_at")
            return SessionBlob(
                cookies=cookies,
                saved_at=datetime.fromisoformat(saved_at) if saved_at else None,
            )
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Session cache %s unreadable, ignoring: %s", self.path, e)
            return None

    def save(self, blob: SessionBlob) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        saved_at = blob.saved_at or self.clock()
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(
                {"saved_at": saved_at.isoformat(), "cookies": blob.cookies},
                f,
                ensure_ascii=False,
                indent=2,
            )
        os.replace(tmp_path, self.path)
        logger.debug("Saved %d cookies to %s", len(blob.cookies), self.path)

    def apply(self, blob: SessionBlob, portal) -> None:
        portal.load_cookies(blob.cookies)

    def capture(self, portal) -> SessionBlob:
        cookies = [{k: c[k] for k in COOKIE_KEYS if k in c} for c in portal.cookies()]
        return SessionBlob(cookies=cookies, saved_at=self.clock())

    def is_authenticated(self, portal) -> bool:
        return portal.is_authenticated()

    def ensure_login(self, portal, credentials) -> bool:
        """
        Make sure the browser is logged in.
        Returns True if the credential form had to be submitted.
        """
        blob = self.load()
        if blob and blob.cookies:
            self.apply(blob, portal)
            if self.is_authenticated(portal):
                logger.info("Cached session is still valid, skipping login")
                return False
            logger.info("Cached session expired, logging in")
        else:
            logger.info("No cached session, logging in")

        portal.login(credentials)
        if not self.is_authenticated(portal):
            raise AuthenticationError(
                f"login as {credentials.numfile} did not reach the private area"
            )
        self.save(self.capture(portal))
        logger.info("Logged in as %s", credentials.numfile)
        return True
