import os
import sys
import json
import uuid
import shutil
import argparse
import subprocess
import requests
from google.cloud import storage
from google.oauth2 import service_account

CONTAINER_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "container")

# Ensure container/ exists
if not os.path.isdir(CONTAINER_DIR):
    raise RuntimeError(f"container/ folder not found at: {CONTAINER_DIR}")

sys.path.insert(0, CONTAINER_DIR)

from swiftcheck import settings  # noqa: E402
from swiftcheck.reporting import load_bucket_name, publish_report  # noqa: E402


# ------------------------- LOAD CREDENTIALS -------------------------
def load_credentials(json_path):
    """Load GCP credentials from a JSON file (required)."""
    if not json_path or not os.path.exists(json_path):
        raise FileNotFoundError(f"Service account JSON not found: {json_path}")
    creds = service_account.Credentials.from_service_account_file(json_path)
    return creds


def storage_client(creds_path=None, project_id=None):
    """Storage client from a service account file, or application default credentials."""
    if creds_path:
        return storage.Client(credentials=load_credentials(creds_path), project=project_id)
    return storage.Client(project=project_id)


# ------------------------- Command helpers -------------------------
def run_cmd(cmd, env=None, check=True, capture_output=False):
    """Run a command and return the CompletedProcess. Raises on check=True and rc!=0."""
    print("->", " ".join(cmd))
    proc = subprocess.run(cmd, env=env, capture_output=capture_output, text=True)
    if check and proc.returncode != 0:
        print("Command failed:", proc.returncode)
        if capture_output:
            print("stdout:", proc.stdout)
            print("stderr:", proc.stderr)
        raise RuntimeError(f"Command failed: {' '.join(cmd)}")
    return proc


def build_pytest_command(target_url, live=True, run_browser=False, report_file=None, extra_args=None):
    cmd = [sys.executable, "-m", "pytest", os.path.join(CONTAINER_DIR, "tests"),
           "--target-url", target_url]
    if live:
        cmd.append("--live")
    if run_browser:
        cmd.append("--run-browser")
    if report_file:
        cmd += ["--html", report_file, "--self-contained-html"]
    if extra_args:
        cmd += list(extra_args)
    return cmd


# ------------------------- CHECK -------------------------
def check_target(url, timeout=20):
    """Fetch the target page and report whether it exposes text areas to drive."""
    try:
        r = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        print("Failed to reach target:", e)
        return False
    print("Target returned status", r.status_code)
    textareas = r.text.lower().count("<textarea")
    print("Text areas in served HTML:", textareas)
    if textareas == 0:
        print("No <textarea> in the initial HTML; the page may render its controls client-side.")
    return r.ok


# ------------------------- RUN -------------------------
def run_suite(target_url, live=True, run_browser=False, extra_args=None):
    """Run the regression suite and write the HTML report into the artifact directory."""
    os.makedirs(settings.ARTIFACT_DIR, exist_ok=True)
    cmd = build_pytest_command(target_url, live=live, run_browser=run_browser,
                               report_file=settings.REPORT_FILE, extra_args=extra_args)
    proc = run_cmd(cmd, check=False)
    print(f"Report written to {settings.REPORT_FILE}")
    return proc.returncode


# ------------------------- SETUP -------------------------
def report_setup(project_id, creds_path=None, location="US"):
    """Create a bucket for test reports and record it in the resource log."""
    client = storage_client(creds_path, project_id)

    bucket_name = f"transliteration-reports-{uuid.uuid4().hex[:8]}"
    bucket = client.create_bucket(client.bucket(bucket_name), location=location)
    print(f"Created bucket: {bucket.name}")

    os.makedirs(settings.ARTIFACT_DIR, exist_ok=True)
    with open(settings.RESOURCE_LOG_FILE, "w") as f:
        json.dump({"buckets": [bucket.name]}, f)
    return bucket.name


# ------------------------- PUBLISH -------------------------
def report_publish(bucket_name=None, creds_path=None, project_id=None, prefix=""):
    bucket_name = bucket_name or settings.REPORT_BUCKET or load_bucket_name(settings.RESOURCE_LOG_FILE)
    if not bucket_name:
        raise RuntimeError("No report bucket configured. Run setup first or pass --bucket.")
    client = storage_client(creds_path, project_id)
    return publish_report(bucket_name, settings.REPORT_FILE, settings.SCREENSHOTS_DIR,
                          client=client, prefix=prefix)


# ------------------------- RESET -------------------------
def report_reset(creds_path=None, project_id=None):
    """Delete the report bucket created by setup and all local artifacts."""
    bucket_name = load_bucket_name(settings.RESOURCE_LOG_FILE)
    if bucket_name:
        client = storage_client(creds_path, project_id)
        try:
            client.bucket(bucket_name).delete(force=True)
            print(f"Deleted bucket: {bucket_name}")
        except Exception as e:
            print(f"Failed to delete bucket {bucket_name}: {e}")
    else:
        print("No resource log found. No bucket to delete.")

    if os.path.isdir(settings.ARTIFACT_DIR):
        shutil.rmtree(settings.ARTIFACT_DIR)
        print(f"Removed {settings.ARTIFACT_DIR}")
    print("Reset Complete.")


# ------------------------- CLI -------------------------
def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Transliteration regression suite")
    parser.add_argument("command", choices=["serve", "check", "run", "setup", "publish", "reset"],
                        help="Command to run")
    parser.add_argument("--target-url", default=settings.TARGET_URL, help="Page under test")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 8080)),
                        help="Port for the stub page (serve)")
    parser.add_argument("--run-browser", action="store_true", help="Also run the stub browser tests (run)")
    parser.add_argument("--stub-only", action="store_true", help="Skip the live cases (run)")
    parser.add_argument("--creds", help="Path to service account JSON")
    parser.add_argument("--project", help="GCP Project ID (required for setup)")
    parser.add_argument("--bucket", help="Report bucket (publish)")
    parser.add_argument("--prefix", default="", help="Blob name prefix (publish)")
    return parser.parse_known_args(argv)


def main(argv=None):
    args, extra = parse_args(argv)

    if args.command == "serve":
        from swiftcheck.stub_app import app
        app.run(host="0.0.0.0", port=args.port)
        return 0
    if args.command == "check":
        return 0 if check_target(args.target_url) else 1
    if args.command == "run":
        return run_suite(args.target_url, live=not args.stub_only,
                         run_browser=args.run_browser or args.stub_only, extra_args=extra)

    try:
        if args.command == "setup":
            if not args.project:
                print("Project ID is required for setup.")
                return 1
            report_setup(args.project, creds_path=args.creds)
        elif args.command == "publish":
            report_publish(args.bucket, creds_path=args.creds, project_id=args.project, prefix=args.prefix)
        elif args.command == "reset":
            report_reset(creds_path=args.creds, project_id=args.project)
    except (FileNotFoundError, RuntimeError) as e:
        print(e)
        return 1
    return 0


if __name__ == "__main__":
    exit(main())
