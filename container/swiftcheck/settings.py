import os

DEFAULT_TARGET_URL = "https://www.swifttranslator.com/"

TARGET_URL = os.environ.get("TARGET_URL", DEFAULT_TARGET_URL)
PAGE_LOAD_TIMEOUT_S = float(os.environ.get("PAGE_LOAD_TIMEOUT_S", 30))
HEADLESS = os.environ.get("HEADLESS", "1").lower() not in ("0", "false", "no")

# Everything a run produces (report, screenshots, resource log) lands here
ARTIFACT_DIR = os.environ.get("ARTIFACT_DIR", os.path.abspath("artifacts"))
SCREENSHOTS_DIR = os.path.join(ARTIFACT_DIR, "screenshots")
REPORT_FILE = os.path.join(ARTIFACT_DIR, "report.html")
RESOURCE_LOG_FILE = os.path.join(ARTIFACT_DIR, "gcp_created_resources.json")
REPORT_BUCKET = os.environ.get("REPORT_BUCKET")


class ConvertOptions:
    """Pacing and timeout policy for a single conversion.

    keystroke_delay_ms -- pause after each typed character
    settle_timeout_ms  -- upper bound on waiting for non-empty output
    poll_interval_ms   -- spacing between output re-checks
    """

    def __init__(self, keystroke_delay_ms=10, settle_timeout_ms=15000, poll_interval_ms=100):
        self.keystroke_delay_ms = keystroke_delay_ms
        self.settle_timeout_ms = settle_timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self.validate()

    def validate(self):
        if self.keystroke_delay_ms < 0:
            raise ValueError(f"keystroke_delay_ms must not be negative: {self.keystroke_delay_ms}")
        if self.settle_timeout_ms <= 0:
            raise ValueError(f"settle_timeout_ms must be positive: {self.settle_timeout_ms}")
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be positive: {self.poll_interval_ms}")
        if self.poll_interval_ms >= self.settle_timeout_ms:
            raise ValueError(
                f"poll_interval_ms ({self.poll_interval_ms}) must be shorter than "
                f"settle_timeout_ms ({self.settle_timeout_ms})"
            )

    def require_typing_delay(self):
        """Typing needs a real pause so every keystroke reaches the page's debounce logic."""
        if self.keystroke_delay_ms <= 0:
            raise ValueError("keystroke_delay_ms must be > 0 when typing non-empty input")

    @property
    def keystroke_delay(self):
        return self.keystroke_delay_ms / 1000.0

    @property
    def settle_timeout(self):
        return self.settle_timeout_ms / 1000.0

    @property
    def poll_interval(self):
        return self.poll_interval_ms / 1000.0

    def __repr__(self):
        return (
            f"ConvertOptions(keystroke_delay_ms={self.keystroke_delay_ms}, "
            f"settle_timeout_ms={self.settle_timeout_ms}, poll_interval_ms={self.poll_interval_ms})"
        )


def load_options(environ=None):
    """Build ConvertOptions from KEYSTROKE_DELAY_MS / SETTLE_TIMEOUT_MS / POLL_INTERVAL_MS."""
    env = os.environ if environ is None else environ
    return ConvertOptions(
        keystroke_delay_ms=int(env.get("KEYSTROKE_DELAY_MS", 10)),
        settle_timeout_ms=int(env.get("SETTLE_TIMEOUT_MS", 15000)),
        poll_interval_ms=int(env.get("POLL_INTERVAL_MS", 100)),
    )
