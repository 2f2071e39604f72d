import os

from sensei.config import load_env_file

__version__ = "0.1.0"

# Keep pytest runs offline and independent of a developer's .env
if not os.getenv("PYTEST_CURRENT_TEST"):
    load_env_file()
