# Uvicorn entry point at the repository root:
#   uvicorn main:app --host 0.0.0.0 --port 8001

from hrportal.main import app  # noqa: F401
