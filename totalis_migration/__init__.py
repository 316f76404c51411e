from __future__ import annotations

# Settings reads `.env` relative to the current directory; load the project
# `.env` up front so scripts started from elsewhere still pick it up.
try:
    from totalis_migration.utils.env import load_project_dotenv

    load_project_dotenv()
except Exception:
    # Never hard-fail import for optional dev convenience.
    pass
