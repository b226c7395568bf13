# conftest.py
import pytest
from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from werkzeug.serving import make_server
import os
import threading

from swiftcheck import settings
from swiftcheck.converter import open_target
from swiftcheck.reporting import load_bucket_name, publish_report
from swiftcheck import stub_app


def pytest_addoption(parser):
    parser.addoption("--target-url", default=settings.TARGET_URL,
                     help="Page the live regression cases run against")
    parser.addoption("--live", action="store_true", default=False,
                     help="Run the regression cases against the live target")
    parser.addoption("--run-browser", action="store_true", default=False,
                     help="Run browser tests against the local stub page")


def pytest_collection_modifyitems(config, items):
    skip_live = pytest.mark.skip(reason="needs --live")
    skip_browser = pytest.mark.skip(reason="needs --run-browser")
    for item in items:
        if "live" in item.keywords and not config.getoption("--live"):
            item.add_marker(skip_live)
        if "browser" in item.keywords and not config.getoption("--run-browser"):
            item.add_marker(skip_browser)


# One fresh browser per test so no page state leaks between conversions
@pytest.fixture(scope="function")
def driver():
    chrome_options = Options()
    if settings.HEADLESS:
        chrome_options.add_argument("--headless=new")
    chrome_options.add_argument("--no-sandbox")
    chrome_options.add_argument("--disable-dev-shm-usage")
    chrome_options.add_argument("--disable-gpu")
    chrome_options.add_argument("--window-size=1920,1080")

    driver = webdriver.Chrome(options=chrome_options)
    yield driver
    driver.quit()


@pytest.fixture
def options():
    return settings.load_options()


@pytest.fixture
def translator_page(driver, request):
    open_target(driver, request.config.getoption("--target-url"), timeout=settings.PAGE_LOAD_TIMEOUT_S)
    return driver


@pytest.fixture(scope="session")
def stub_server():
    server = make_server("127.0.0.1", 0, stub_app.app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}"
    server.shutdown()
    thread.join(timeout=5)


@pytest.fixture
def open_stub(driver, stub_server):
    """Navigate the test's browser to the stub page with the given query string."""
    def _open(query=""):
        url = f"{stub_server}/?{query}" if query else f"{stub_server}/"
        open_target(driver, url, timeout=settings.PAGE_LOAD_TIMEOUT_S)
        return driver
    return _open


# Hook to take screenshot and embed in HTML report on failure
@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    rep = outcome.get_result()

    if rep.when == "call" and rep.failed:
        driver = item.funcargs.get("driver")
        if driver:
            os.makedirs(settings.SCREENSHOTS_DIR, exist_ok=True)
            screenshot_file = os.path.join(settings.SCREENSHOTS_DIR, f"{item.name}.png")
            try:
                driver.save_screenshot(screenshot_file)
            except Exception as e:
                print(f"Could not capture screenshot for {item.name}: {e}")
                return

            # Attach screenshot to pytest-html report
            if item.config.pluginmanager.hasplugin("html"):
                from pytest_html import extras
                extra = getattr(rep, "extras", [])
                extra.append(extras.image(screenshot_file))
                rep.extras = extra


# Hook to archive the report after the entire test session
def pytest_terminal_summary(terminalreporter, exitstatus, config):
    report_file = getattr(config.option, "htmlpath", None)
    if not report_file:
        return
    if not os.path.exists(report_file):
        print("Report not found, skipping upload.")
        return

    bucket_name = settings.REPORT_BUCKET or load_bucket_name(settings.RESOURCE_LOG_FILE)
    if not bucket_name:
        print("No GCP bucket configured. Skipping upload.")
        return

    try:
        publish_report(bucket_name, report_file, settings.SCREENSHOTS_DIR)
    except Exception as e:
        print("Failed to upload report:", e)
