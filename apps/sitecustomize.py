"""Early bootstrapping for mentorhub when `apps/` is on `sys.path`.

This module is imported automatically by Python at startup if found on
`sys.path` (see the `site` module). We leverage it to load environment
variables from `.env` files (package-local first, then repo root) so scripts
see `SEATABLE_API_KEY` and friends without extra setup.

It is idempotent: guarded by `MENTORHUB_ENV_LOADED` so repeated imports do
not reload the `.env` file.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


def _load_env_once() -> None:
    if os.environ.get("MENTORHUB_ENV_LOADED") == "1":
        return

    apps_dir = Path(__file__).resolve().parent
    pkg_env = apps_dir / "mentorhub" / ".env"
    root_env = apps_dir.parent / ".env"

    if pkg_env.exists():
        load_dotenv(pkg_env)
    elif root_env.exists():
        load_dotenv(root_env)
    os.environ["MENTORHUB_ENV_LOADED"] = "1"


_load_env_once()
