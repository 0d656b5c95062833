"""
Selenium adapter for the gilfondrt.ru private area.

Only this module knows URLs, selectors and button captions; the rest of the
bot talks to GilfondPortal through plain methods and ListingRow values.
"""
from __future__ import annotations

import logging
import time

from selenium.common.exceptions import (
    NoSuchElementException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import Select

from .browser import (
    body_contains_text,
    click_element,
    dump_debug,
    type_text,
    wait_click,
    wait_for_idle,
    wait_find_css,
)
from .errors import PortalError, RowUnavailableError, ScopeUnavailableError
from .models import ListingRow

logger = logging.getLogger(__name__)

BASE_URL = "https://mail.gilfondrt.ru/private/"
AUTH_URL = BASE_URL + "auth.php"
ADD_FLAT_URL = BASE_URL + "add_flat.php"
REQUESTS_URL = BASE_URL + "requests.php"

LOGIN_FORM_CSS = 'input[name="numfile"]'
WELCOME_MARKER = "Уважаемые участники жилищных программ!"
LOGIN_BUTTON = "Подтвердить"
ADD_LINK = "добавить"
SAVE_BUTTON = "Сохранить изменения"

PROGRAM_SELECT = "cmn_id"
HOUSE_SELECT = "rty_id"
FLAT_ROWS_CSS = ".flatList table tr[id]"
PRIORITY_INPUTS_CSS = 'table table.border_1 input[type="text"]'
UNSET_PRIORITY_CSS = 'table table.border_1 tr[bgcolor="#FF0000"] input[type="text"]'

SELECT_PAUSE = 1.0


def button_xpath(caption):
    return (
        f"//input[(@type='submit' or @type='button') and @value='{caption}']"
        f" | //button[normalize-space()='{caption}']"
    )


def parse_rooms_cell(text):
    digits = "".join(ch for ch in text if ch.isdigit())
    return int(digits) if digits else None


class GilfondPortal:
    def __init__(self, driver, screens_dir="screens"):
        self.driver = driver
        self.screens_dir = screens_dir

    def open(self, url):
        self.driver.get(url)
        wait_for_idle(self.driver)

    def capture_diagnostics(self, tag):
        return dump_debug(self.driver, self.screens_dir, tag)

    # ---------- session ----------
    def cookies(self):
        return self.driver.get_cookies()

    def load_cookies(self, cookies):
        """Install cookies before the first navigation (Chrome DevTools)."""
        self.driver.execute_cdp_cmd("Network.enable", {})
        for c in cookies:
            params = {
                "name": c["name"],
                "value": c.get("value", ""),
                "domain": c.get("domain", ""),
                "path": c.get("path", "/"),
                "secure": bool(c.get("secure", False)),
                "httpOnly": bool(c.get("httpOnly", False)),
            }
            if c.get("expiry"):
                params["expires"] = c["expiry"]
            if c.get("sameSite") in ("Strict", "Lax", "None"):
                params["sameSite"] = c["sameSite"]
            self.driver.execute_cdp_cmd("Network.setCookie", params)
        logger.debug("Replayed %d cookies", len(cookies))

    def is_authenticated(self):
        self.open(REQUESTS_URL)
        return not self.driver.find_elements(By.CSS_SELECTOR, LOGIN_FORM_CSS)

    def login(self, credentials):
        logger.info("-> Opening login page...")
        self.open(AUTH_URL)
        try:
            type_text(self.driver, self.driver.find_element(By.NAME, "numfile"), credentials.numfile)
            type_text(self.driver, self.driver.find_element(By.NAME, "pass"), credentials.password)
            wait_click(self.driver, (By.XPATH, button_xpath(LOGIN_BUTTON)), timeout=10)
        except (NoSuchElementException, TimeoutException) as e:
            raise PortalError(f"login form not usable: {e.msg}") from e
        wait_for_idle(self.driver)
        if not body_contains_text(self.driver, WELCOME_MARKER):
            logger.warning("Welcome text not shown after login")

    # ---------- listings ----------
    def _select(self, name, text):
        try:
            el = self.driver.find_element(By.NAME, name)
            Select(el).select_by_visible_text(text)
        except NoSuchElementException as e:
            raise ScopeUnavailableError(f"no {name!r} option {text!r}") from e
        time.sleep(SELECT_PAUSE)
        wait_for_idle(self.driver)

    def listing_scopes(self, program):
        self.open(ADD_FLAT_URL)
        self._select(PROGRAM_SELECT, program)
        try:
            wait_find_css(self.driver, f'select[name="{HOUSE_SELECT}"]', timeout=10)
        except TimeoutException as e:
            raise ScopeUnavailableError(f"no house selector for {program!r}") from e
        options = self.driver.find_elements(By.CSS_SELECTOR, f'select[name="{HOUSE_SELECT}"] option')
        return [o.text.strip() for o in options if o.text.strip()]

    def scope_rows(self, scope):
        self._select(HOUSE_SELECT, scope)
        rows = []
        for tr in self.driver.find_elements(By.CSS_SELECTOR, FLAT_ROWS_CSS):
            tds = tr.find_elements(By.TAG_NAME, "td")
            if len(tds) < 4:
                continue
            links = tds[1].find_elements(By.TAG_NAME, "a")
            rows.append(ListingRow(
                id=tr.get_attribute("id"),
                number=tds[1].text.strip(),
                floor=tds[2].text.strip(),
                rooms=parse_rooms_cell(tds[3].text),
                url=links[0].get_attribute("href") if links else "",
                available="open" in (tr.get_attribute("class") or "").split(),
            ))
        return rows

    def add_to_requests(self, row):
        logger.info("-> Adding flat %s (%s rooms)", row.number, row.rooms)
        try:
            tr = self.driver.find_element(By.CSS_SELECTOR, f'.flatList table tr[id="{row.id}"]')
            click_element(self.driver, tr.find_element(By.LINK_TEXT, ADD_LINK))
        except NoSuchElementException as e:
            raise RowUnavailableError(f"no add link for flat {row.number} ({row.id})") from e
        wait_for_idle(self.driver)

    # ---------- requests / priorities ----------
    def open_requests(self):
        self.open(REQUESTS_URL)

    def assigned_priorities(self):
        values = []
        for el in self.driver.find_elements(By.CSS_SELECTOR, PRIORITY_INPUTS_CSS):
            text = (el.get_attribute("value") or "").strip()
            if text.isdigit():
                values.append(int(text))
        return values

    def unset_priority_fields(self):
        return [
            el for el in self.driver.find_elements(By.CSS_SELECTOR, UNSET_PRIORITY_CSS)
            if not (el.get_attribute("value") or "").strip()
        ]

    def set_priority(self, field, value):
        type_text(self.driver, field, str(value))

    def save_priorities(self):
        try:
            wait_click(self.driver, (By.XPATH, button_xpath(SAVE_BUTTON)), timeout=10, retries=2)
        except WebDriverException as e:
            raise PortalError(f"could not save priorities: {e.msg}") from e
        wait_for_idle(self.driver)
