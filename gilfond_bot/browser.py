"""Chrome driver construction and resilient Selenium helpers."""
from __future__ import annotations

import logging
import random
import time
from datetime import datetime
from pathlib import Path

from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

logger = logging.getLogger(__name__)

CLICK_PAUSE = 0.5


def build_driver(headless=True):
    options = webdriver.ChromeOptions()
    options.add_argument("--disable-gpu")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--no-first-run")
    options.add_argument("--no-default-browser-check")
    if headless:
        options.add_argument("--headless=new")
        options.add_argument("--window-size=1920,1080")
    else:
        options.add_argument("--start-maximized")
    # Selenium Manager resolves chromedriver
    return webdriver.Chrome(options=options)


def wait_for_idle(driver, timeout=20):
    WebDriverWait(driver, timeout).until(lambda d: d.execute_script("return document.readyState") == "complete")


def wait_find_css(driver, css, timeout=20):
    return WebDriverWait(driver, timeout).until(EC.presence_of_element_located((By.CSS_SELECTOR, css)))


def click_element(driver, el, post_pause=CLICK_PAUSE):
    driver.execute_script("arguments[0].scrollIntoView({block:'center'});", el)
    time.sleep(0.12 + random.random() * 0.25)
    try:
        el.click()
    except WebDriverException:
        driver.execute_script("arguments[0].click();", el)
    time.sleep(post_pause)


def wait_click(driver, locator, timeout=20, retries=4, post_pause=CLICK_PAUSE):
    """
    Resilient click helper:
    - waits for clickable
    - scrolls into view
    - tiny random pause to avoid race
    - JS-click fallback
    - retries on stale / transient WebDriver errors
    """
    last_err = None
    for _ in range(retries):
        try:
            el = WebDriverWait(driver, timeout).until(EC.element_to_be_clickable(locator))
            click_element(driver, el, post_pause=post_pause)
            return el
        except (StaleElementReferenceException, NoSuchElementException, WebDriverException) as e:
            last_err = e
            time.sleep(0.5 + random.random() * 0.4)
    raise last_err


def type_text(driver, el, text, clear_first=True):
    driver.execute_script("arguments[0].scrollIntoView({block:'center'});", el)
    if clear_first:
        el.clear()
    el.send_keys(text)
    time.sleep(0.2)
    return el


def body_contains_text(driver, txt):
    try:
        return bool(driver.execute_script(
            "return (document.body && document.body.innerText && document.body.innerText.indexOf(arguments[0]) !== -1);",
            txt
        ))
    except WebDriverException:
        return False


def dump_debug(driver, directory, tag="debug"):
    """Save a screenshot and the page HTML; never raises."""
    directory = Path(directory)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    png = directory / f"{tag}_{ts}.png"
    html = directory / f"{tag}_{ts}.html"
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Cannot create %s: %s", directory, e)
        return None
    try:
        driver.save_screenshot(str(png))
    except WebDriverException as e:
        logger.warning("Screenshot failed: %s", e)
    try:
        with open(html, "w", encoding="utf-8") as f:
            f.write(driver.page_source)
    except (OSError, WebDriverException) as e:
        logger.warning("Page dump failed: %s", e)
    logger.info("Saved debug artifacts: %s and %s", png, html)
    return png, html
