import os

# Keep OpenTelemetry exporters out of unit tests
os.environ.setdefault("DISABLE_CLOUD_TELEMETRY", "true")
