"""
Convergence driver for debounced, asynchronous text converters on a live page.

A conversion resets the input control, types the text one character at a
time and then watches the output control until it holds something:

    Idle -> Resolving -> Reset -> Injecting -> Polling -> Settled | TimedOut

Empty input skips Injecting and Polling altogether.
"""
import logging
import time
from collections import namedtuple
from contextlib import contextmanager

from selenium.common.exceptions import (
    InvalidSessionIdException,
    NoSuchWindowException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from urllib3.exceptions import MaxRetryError

from swiftcheck.settings import ConvertOptions

log = logging.getLogger(__name__)

Settled = namedtuple("Settled", ["value", "elapsed", "observations", "saw_empty"])
TimedOut = namedtuple("TimedOut", ["last_value", "elapsed", "observations"])
Conversion = namedtuple("Conversion", ["input_text", "output", "outcome"])

# Re-resolves allowed per keystroke when the page swaps the input control out
STALE_RETRIES = 3

# Programmatic value changes do not fire input events on their own
_CLEAR_AND_NOTIFY = (
    "arguments[0].value = '';"
    "arguments[0].dispatchEvent(new Event('input', {bubbles: true}));"
)


# ------------------------- ERRORS -------------------------
class ConversionError(Exception):
    """Base class for everything a conversion can fail with."""


class ControlNotFound(ConversionError):
    def __init__(self, locator):
        self.locator = locator
        super().__init__(f"no {locator.role} control found (tried {', '.join(locator.selectors())})")


class SettlementTimeout(ConversionError):
    def __init__(self, input_text, last_value, elapsed):
        self.input_text = input_text
        self.last_value = last_value
        self.elapsed = elapsed
        super().__init__(
            f"output stayed empty for input {input_text!r} after {elapsed:.1f}s "
            f"(last observed value: {last_value!r})"
        )


class SessionInvalid(ConversionError):
    pass


@contextmanager
def _live_session(driver):
    try:
        yield
    except (InvalidSessionIdException, NoSuchWindowException) as e:
        raise SessionInvalid(f"browser session is no longer usable: {e.msg}") from e
    except (MaxRetryError, ConnectionError) as e:
        # quit() or a dead chromedriver: the remote end no longer answers
        raise SessionInvalid(f"browser session is disposed or unreachable: {e}") from e


# ------------------------- LOCATORS -------------------------
class ControlLocator:
    """
    Lazy description of one control on the page.

    A placeholder hint is preferred when the page offers one; otherwise the
    control is picked by position among every element of the same tag.
    Nothing is cached, each resolve() queries the current document.
    """

    def __init__(self, role, tag="textarea", hint=None, pick="first"):
        if pick not in ("first", "last"):
            raise ValueError(f"pick must be 'first' or 'last', not {pick!r}")
        self.role = role
        self.tag = tag
        self.hint = hint
        self.pick = pick

    def selectors(self):
        found = []
        if self.hint:
            found.append(f'{self.tag}[placeholder*="{self.hint}"]')
        found.append(self.tag)
        return found

    def resolve(self, driver):
        for selector in self.selectors():
            candidates = driver.find_elements(By.CSS_SELECTOR, selector)
            if candidates:
                log.debug("%s control: %d match(es) for %s, taking %s",
                          self.role, len(candidates), selector, self.pick)
                return candidates[0] if self.pick == "first" else candidates[-1]
        raise ControlNotFound(self)

    def __repr__(self):
        return f"ControlLocator({self.role!r}, tag={self.tag!r}, hint={self.hint!r}, pick={self.pick!r})"


INPUT_CONTROL = ControlLocator("input", hint="Type here", pick="first")
OUTPUT_CONTROL = ControlLocator("output", hint="Sinhala Unicode", pick="last")


# ------------------------- STEPS -------------------------
def _pause(seconds):
    time.sleep(seconds)


def ensure_session(driver):
    """Raise SessionInvalid unless the driver is alive and showing an http(s) document."""
    with _live_session(driver):
        url = driver.current_url
    if not url or not url.startswith(("http://", "https://")):
        raise SessionInvalid(f"session is not on a navigated page (current url: {url!r})")
    return url


def open_target(driver, url, timeout=30, ready_control=INPUT_CONTROL):
    """
    Navigate and wait until the page is usable: the document has loaded and a
    control of `ready_control`'s kind is visible. Pages that render their
    controls from script only pass the second check once the script has run.
    """
    log.info("opening %s", url)
    with _live_session(driver):
        try:
            driver.set_page_load_timeout(timeout)
            driver.get(url)
            WebDriverWait(driver, timeout).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )
        except TimeoutException as e:
            raise SessionInvalid(f"{url} did not finish loading within {timeout}s") from e
        except WebDriverException as e:
            if isinstance(e, (InvalidSessionIdException, NoSuchWindowException)):
                raise
            raise SessionInvalid(f"could not open {url}: {e.msg}") from e

        try:
            WebDriverWait(driver, timeout).until(
                EC.visibility_of_element_located((By.CSS_SELECTOR, ready_control.tag))
            )
        except TimeoutException as e:
            raise ControlNotFound(ready_control) from e


def read_value(element):
    value = element.get_property("value")
    return value if value is not None else ""


def reset_control(driver, element):
    element.clear()
    driver.execute_script(_CLEAR_AND_NOTIFY, element)


def type_text(driver, control, text, delay, element=None):
    """Send text one character at a time, pausing `delay` seconds after each."""
    if element is None:
        element = control.resolve(driver)
    for char in text:
        for attempt in range(STALE_RETRIES + 1):
            try:
                element.send_keys(char)
                break
            except StaleElementReferenceException as e:
                # page re-rendered the control mid-typing
                if attempt == STALE_RETRIES:
                    raise ControlNotFound(control) from e
                element = control.resolve(driver)
        _pause(delay)
    log.debug("typed %d characters into %s control", len(text), control.role)


class PollingState:
    def __init__(self):
        self.started = time.monotonic()
        self.last_value = ""
        self.settled = False
        self.observations = 0
        self.saw_empty = False

    @property
    def elapsed(self):
        return time.monotonic() - self.started

    def observe(self, value):
        self.observations += 1
        self.last_value = value
        self.settled = bool(value)
        if not value:
            self.saw_empty = True
        return self.settled


def poll_for_output(driver, control, options):
    """
    Re-read the output control until it is non-empty or the settle timeout passes.

    Returns Settled or TimedOut; never raises on timeout.
    """
    state = PollingState()

    def output_present(d):
        return state.observe(read_value(control.resolve(d)))

    wait = WebDriverWait(
        driver,
        options.settle_timeout,
        poll_frequency=options.poll_interval,
        ignored_exceptions=(StaleElementReferenceException,),
    )
    try:
        wait.until(output_present)
    except TimeoutException:
        pass
    if not state.settled:
        log.warning("output still empty after %.1fs (%d checks)", state.elapsed, state.observations)
        return TimedOut(state.last_value, state.elapsed, state.observations)
    value = state.last_value
    log.info("output settled after %.2fs (%d checks)", state.elapsed, state.observations)
    return Settled(value, state.elapsed, state.observations, state.saw_empty)


# ------------------------- CONVERT -------------------------
def run_conversion(driver, input_text, options=None,
                   input_control=INPUT_CONTROL, output_control=OUTPUT_CONTROL):
    """Like convert(), but returns a Conversion carrying the poll outcome (None for empty input)."""
    if options is None:
        options = ConvertOptions()
    if input_text:
        options.require_typing_delay()

    ensure_session(driver)
    with _live_session(driver):
        input_element = input_control.resolve(driver)
        output_control.resolve(driver)
        reset_control(driver, input_element)

        if not input_text:
            return Conversion(input_text, read_value(output_control.resolve(driver)), None)

        type_text(driver, input_control, input_text, options.keystroke_delay, element=input_element)
        outcome = poll_for_output(driver, output_control, options)

    if isinstance(outcome, TimedOut):
        raise SettlementTimeout(input_text, outcome.last_value, outcome.elapsed)
    return Conversion(input_text, outcome.value, outcome)


def convert(driver, input_text, options=None,
            input_control=INPUT_CONTROL, output_control=OUTPUT_CONTROL):
    """
    Type `input_text` into the page's input control and return the converted output.

    The driver must already be on the target page. The text is passed through
    untouched, newlines and runs of spaces included.

    Raises ControlNotFound, SettlementTimeout or SessionInvalid.
    """
    return run_conversion(driver, input_text, options, input_control, output_control).output
