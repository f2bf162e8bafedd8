"""
Constants
Centralised storage for generation steps, status names and estimates.
"""
STEP_IDS = ("upload", "analyze", "generate-theme", "create-repo", "deploy-preview")
ERROR_STEP = "error"

TERMINAL_STATUSES = ("completed", "error")

# Whole generation run is assumed to take 5 minutes
TOTAL_ESTIMATED_SECONDS = 300

CLIENT_ID_SLUG_LENGTH = 10
CLIENT_ID_RANDOM_LENGTH = 6

CANCELLED_ERROR_CODE = "CANCELLED_BY_USER"
SIGNATURE_HEADER = "X-Hub-Signature-256"
USER_AGENT = "Webler-Client-Portal/1.0"
