"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    GITHUB_TOKEN            — Bearer credential for the repository-dispatch call
    GITHUB_WEBHOOK_SECRET   — Shared secret used to sign status webhooks (optional)
    WEBHOOK_ALLOW_UNSIGNED  — Accept unsigned webhooks when no secret is set (default: false)
    SITE_URL                — Public base URL, used to build the webhook callback URL
    DISPATCH_REPOSITORY     — owner/repo that runs the generation workflow
    DISPATCH_EVENT_TYPE     — repository_dispatch event type (default: generate-client-site)
    STATUS_POLL_INTERVAL    — Client poller interval in seconds (default: 5)
    MAX_RETRY_ATTEMPTS      — Client poller retries for network/5xx errors (default: 3)
    STATUS_TTL_SECONDS      — How long a progress record is kept in memory (default: 86400)
    LOG_DIR                 — Directory for daily log files (default: logs)

Webhook Signing:
    When GITHUB_WEBHOOK_SECRET is set every webhook must carry a valid
    X-Hub-Signature-256 header. When it is not set, unsigned webhooks are
    rejected unless WEBHOOK_ALLOW_UNSIGNED=true, which is meant for local
    development against a workflow that cannot sign its requests.
"""
import os
from dotenv import load_dotenv

load_dotenv()

GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
GITHUB_WEBHOOK_SECRET = os.getenv("GITHUB_WEBHOOK_SECRET")
WEBHOOK_ALLOW_UNSIGNED = os.getenv("WEBHOOK_ALLOW_UNSIGNED", "false").lower() == "true"

SITE_URL = os.getenv("SITE_URL", "http://localhost:8000").rstrip("/")

# External generation workflow
DISPATCH_REPOSITORY = os.getenv("DISPATCH_REPOSITORY", "WebAsAService/base-template")
DISPATCH_EVENT_TYPE = os.getenv("DISPATCH_EVENT_TYPE", "generate-client-site")

# Client poller
STATUS_POLL_INTERVAL = float(os.getenv("STATUS_POLL_INTERVAL", 5))
MAX_RETRY_ATTEMPTS = int(os.getenv("MAX_RETRY_ATTEMPTS", 3))

# Status store eviction
STATUS_TTL_SECONDS = int(os.getenv("STATUS_TTL_SECONDS", 86400))

LOG_DIR = os.getenv("LOG_DIR", "logs")
