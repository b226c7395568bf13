import os
import json
from google.cloud import storage


def load_bucket_name(resource_log):
    """Return the report bucket recorded by `main.py setup`, or None."""
    if os.path.exists(resource_log):
        with open(resource_log) as f:
            data = json.load(f)
        buckets = data.get("buckets") or [None]
        return buckets[0]
    return None


def publish_report(bucket_name, report_file, screenshots_dir, client=None, prefix=""):
    """
    Upload the pytest-html report and any failure screenshots to a GCS bucket.
    Returns the list of uploaded blob names.
    """
    if not os.path.exists(report_file):
        raise FileNotFoundError(f"Report not found: {report_file}")

    if client is None:
        client = storage.Client()
    bucket = client.bucket(bucket_name)
    uploaded = []

    blob_name = f"{prefix}report.html"
    bucket.blob(blob_name).upload_from_filename(report_file)
    print(f"Uploaded pytest HTML report to gs://{bucket_name}/{blob_name}")
    uploaded.append(blob_name)

    if os.path.isdir(screenshots_dir):
        for file in sorted(os.listdir(screenshots_dir)):
            if file.endswith(".png"):
                blob_name = f"{prefix}screenshots/{file}"
                bucket.blob(blob_name).upload_from_filename(os.path.join(screenshots_dir, file))
                print(f"Uploaded screenshot {file} to gs://{bucket_name}/{blob_name}")
                uploaded.append(blob_name)

    return uploaded
