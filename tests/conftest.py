"""Test environment: in-memory SQLite, throwaway upload dir, no background sweep.

Loaded by pytest before any test module, so app settings are built from these values.
"""

import os
import tempfile

os.environ["APP_ENV"] = "dev"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SEED_USERS_ENABLED"] = "false"
os.environ["IMAGE_SWEEP_ENABLED"] = "false"
os.environ["IMAGE_STORAGE"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="ipb-test-uploads-")
