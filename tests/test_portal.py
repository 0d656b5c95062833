from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from selenium.common.exceptions import NoSuchElementException, TimeoutException

from gilfond_bot import portal as portal_mod
from gilfond_bot.errors import PortalError, RowUnavailableError, ScopeUnavailableError
from gilfond_bot.portal import GilfondPortal, button_xpath, parse_rooms_cell


@pytest.fixture(autouse=True)
def no_waits(monkeypatch):
    monkeypatch.setattr(portal_mod, "wait_for_idle", lambda driver, timeout=20: None)
    monkeypatch.setattr(portal_mod.time, "sleep", lambda s: None)


def element(text="", attrs=None, children=None):
    el = MagicMock()
    el.text = text
    attrs = attrs or {}
    el.get_attribute.side_effect = attrs.get
    el.find_elements.side_effect = lambda by, value: (children or {}).get(value, [])
    return el


@pytest.mark.parametrize("text, rooms", [("2", 2), (" 3-комн. ", 3), ("", None), ("—", None)])
def test_parse_rooms_cell(text, rooms):
    assert parse_rooms_cell(text) == rooms


def test_button_xpath_matches_inputs_and_buttons():
    xpath = button_xpath("Подтвердить")
    assert "@value='Подтвердить'" in xpath
    assert "//button[normalize-space()='Подтвердить']" in xpath


def test_load_cookies_uses_devtools():
    driver = MagicMock()
    GilfondPortal(driver).load_cookies([
        {"name": "PHPSESSID", "value": "v", "domain": "mail.gilfondrt.ru", "path": "/",
         "secure": True, "httpOnly": True, "expiry": 1893456000, "sameSite": "Lax"},
        {"name": "lang", "value": "ru", "domain": "mail.gilfondrt.ru"},
    ])
    calls = driver.execute_cdp_cmd.call_args_list
    assert calls[0].args == ("Network.enable", {})
    first = calls[1].args[1]
    assert calls[1].args[0] == "Network.setCookie"
    assert first["expires"] == 1893456000
    assert first["sameSite"] == "Lax"
    second = calls[2].args[1]
    assert second["path"] == "/"
    assert "expires" not in second
    assert "sameSite" not in second


def test_is_authenticated_checks_login_form():
    driver = MagicMock()
    driver.find_elements.return_value = []
    assert GilfondPortal(driver).is_authenticated() is True
    driver.get.assert_called_with(portal_mod.REQUESTS_URL)

    driver.find_elements.return_value = [MagicMock()]
    assert GilfondPortal(driver).is_authenticated() is False


def test_scope_rows_parses_table():
    def row(row_id, number, rooms, classes):
        link = element(attrs={"href": f"https://mail.gilfondrt.ru/private/flat.php?id={row_id}"})
        tds = [element(), element(number, children={"a": [link]}), element("5"), element(rooms)]
        return element(attrs={"id": row_id, "class": classes}, children={"td": tds})

    driver = MagicMock()
    driver.find_elements.return_value = [
        row("f1", "12", "2", "open"),
        row("f2", "13", "1", "closed"),
        element(attrs={"id": "header"}, children={"td": []}),
    ]
    portal = GilfondPortal(driver)
    portal._select = MagicMock()

    rows = portal.scope_rows("ул. Ленина, 1")

    portal._select.assert_called_once_with("rty_id", "ул. Ленина, 1")
    assert [(r.id, r.number, r.floor, r.rooms, r.available) for r in rows] == [
        ("f1", "12", "5", 2, True),
        ("f2", "13", "5", 1, False),
    ]
    assert rows[0].url.endswith("id=f1")


def test_missing_program_select_is_scope_unavailable():
    driver = MagicMock()
    driver.find_element.side_effect = NoSuchElementException("no cmn_id")
    with pytest.raises(ScopeUnavailableError):
        GilfondPortal(driver).listing_scopes("Поручение №1")


def test_priority_fields():
    driver = MagicMock()
    filled = element(attrs={"value": "3"})
    blank = element(attrs={"value": " "})
    junk = element(attrs={"value": "abc"})

    def find_elements(by, css):
        if css == portal_mod.UNSET_PRIORITY_CSS:
            return [blank, filled]
        return [filled, blank, junk]

    driver.find_elements.side_effect = find_elements
    portal = GilfondPortal(driver)
    assert portal.assigned_priorities() == [3]
    assert portal.unset_priority_fields() == [blank]


def test_save_priorities_failure_is_fatal(monkeypatch):
    def no_button(*args, **kwargs):
        raise TimeoutException("no save button")

    monkeypatch.setattr(portal_mod, "wait_click", no_button)
    with pytest.raises(PortalError):
        GilfondPortal(MagicMock()).save_priorities()


def test_add_without_link_raises_row_unavailable():
    driver = MagicMock()
    driver.find_element.side_effect = NoSuchElementException("gone")
    row = MagicMock(id="f1", number="12", rooms=2)
    with pytest.raises(RowUnavailableError, match="flat 12"):
        GilfondPortal(driver).add_to_requests(row)
