from __future__ import annotations

from pathlib import Path


def load_project_dotenv() -> bool:
    """
    Load `.env` from the project root into `os.environ`.

    `Settings(env_file=".env")` resolves `.env` relative to the current
    directory, so running a script from outside the repo root would miss it.
    Values placed in `os.environ` here are found regardless of cwd.

    This is a no-op where env vars are already injected by the runtime.
    """
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return False

    here = Path(__file__).resolve()
    project_root = here.parents[2]

    candidates = [
        project_root / ".env",
        project_root / "totalis_migration" / ".env",
    ]

    loaded = False
    for p in candidates:
        if p.exists():
            loaded = bool(load_dotenv(p, override=False)) or loaded
    return loaded
