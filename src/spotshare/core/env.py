"""
`.env` loading for backend credentials.

`SUPABASE_URL` / `SUPABASE_ANON_KEY` usually live in a `.env` file next to the
checkout. `SPOTSHARE_ENV_FILE` points at a specific file; otherwise python-dotenv
searches upwards from the working directory.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import find_dotenv, load_dotenv


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once; returns the file used, or None. Process env always wins."""
    explicit = os.getenv("SPOTSHARE_ENV_FILE")
    found = str(Path(explicit).expanduser()) if explicit else find_dotenv(usecwd=True)
    if not found or not Path(found).is_file():
        return None
    load_dotenv(dotenv_path=found, override=False)
    return Path(found).resolve()
