"""Global pytest configuration."""

import os

# Tests run against in-memory repositories and board store unless a test
# wires a database explicitly.
os.environ.pop("DATABASE_URL", None)
os.environ.pop("BOARD_STORE_PATH", None)
os.environ.setdefault("BASE_URL", "http://testserver")
