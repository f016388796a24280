"""Shared constants for sitepub."""

import re

# Published versions look like v1.2.3
TAG_PATTERN = re.compile(r'^v?(\d+)\.(\d+)\.(\d+)$')
FIRST_TAG = "v1.0.0"

# Pipeline stages, reported on failures so operators can tell what broke
STAGE_FETCH = "fetch"
STAGE_INSPECT = "inspect"
STAGE_CONTENT = "content"
STAGE_BUILD = "build"
STAGE_DEPLOY = "deploy"
STAGE_TAG = "tag"
STAGE_LOCK = "lock"
STAGE_VALIDATE = "validate"
STAGE_CLONE = "clone"
STAGE_CHECKOUT = "checkout"
STAGE_PREVIEW = "preview"
STAGE_COMMIT = "commit"

# Tag listing tiers
TAG_SOURCE_LOCAL = "local"
TAG_SOURCE_REMOTE = "remote"
TAG_SOURCE_NONE = "none"

# CLI exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
