# Entry point for running from the repository root:
#   uvicorn main:app --host 0.0.0.0 --port 8001

from leave_engine.main import app  # noqa: F401
