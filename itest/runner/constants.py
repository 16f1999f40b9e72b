# Where: itest/runner/constants.py
# What: Fixed names, ports, exit codes and markers for the gateway test run.
# Why: Keep every literal the orchestrator and its tests agree on in one place.

EXIT_SUCCESS = 0
EXIT_TEST_FAILURE = 2
EXIT_MISSING_DEPENDENCY = 3
EXIT_UNEXPECTED = 1

COMPOSE_PROJECT = "ngt"
COMPOSE_FILE = "test/docker-compose.yaml"
TEST_DIR = "test"
FIXTURE_DATA_SUBDIR = "data"

GATEWAY_PROTO = "http"
GATEWAY_HOST = "localhost"
GATEWAY_PORT = 8989
GATEWAY_SERVICE = "nginx-s3-gateway"

BACKEND_URL = "http://localhost:9090"
BACKEND_HEALTH_PATH = "/minio/health/cluster"
BACKEND_SERVICE = "minio"

IMAGE_NAME = "nginx-s3-gateway"
ASSERTION_SCRIPT = "test/integration/test_api.sh"
UNIT_TEST_DIR = "test/unit"
UNIT_TEST_SCRIPT = "s3gateway_test.js"
LICENSE_CERT = "plus/etc/ssl/nginx/nginx-repo.crt"
LICENSE_KEY = "plus/etc/ssl/nginx/nginx-repo.key"

HEALTH_ATTEMPTS = 3
HEALTH_DELAY_SECONDS = 2.0
HEALTH_READY_STATUS = "200"

MIN_SIGNATURE_MARKERS = 3
SIGNATURE_MARKER_FORMATS = (
    "AWS Signatures Version: v{version}",
    "AWS v{version} Auth",
)

COMPOSE_VERSION_PATTERN = r"^[A-Za-z ]+v[0-9.]+$"
BUILDKIT_MARKER = "Build with BuildKit"

VARIANT_OSS = "oss"
VARIANT_PLUS = "plus"
LATEST_NJS_PREFIX = "latest-njs-"
VALID_VARIANTS = ("oss", "plus", "latest-njs-oss", "latest-njs-plus")

ENV_SIGS_VERSION = "AWS_SIGS_VERSION"
ENV_ALLOW_DIRECTORY_LIST = "ALLOW_DIRECTORY_LIST"
ENV_PROVIDE_INDEX_PAGE = "PROVIDE_INDEX_PAGE"
ENV_APPEND_SLASH = "APPEND_SLASH_FOR_POSSIBLE_DIRECTORY"
ENV_COMPOSE_COMPATIBILITY = "COMPOSE_COMPATIBILITY"

# Fixed credentials for the standalone njs module check.
UNIT_TEST_ENV = (
    ("S3_DEBUG", "true"),
    ("S3_STYLE", "virtual"),
    ("S3_ACCESS_KEY_ID", "unit_test"),
    ("S3_SECRET_KEY", "unit_test"),
    ("S3_BUCKET_NAME", "unit_test"),
    ("S3_SERVER", "unit_test"),
    ("S3_SERVER_PROTO", "https"),
    ("S3_SERVER_PORT", "443"),
    ("S3_REGION", "test-1"),
    ("AWS_SIGS_VERSION", "4"),
)
