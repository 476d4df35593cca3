"""Rainy Day Insurance server entry point.

Uses Hydra to load configuration and then starts the FastAPI application via
uvicorn.

Usage::

    poetry run python -m rainy_day.main                    # default config
    poetry run python -m rainy_day.main storage.type=mongo  # override
"""

from __future__ import annotations

import os
from pathlib import Path

import hydra
import uvicorn
from dotenv import load_dotenv
from loguru import logger
from omegaconf import DictConfig, open_dict

from rainy_day.api.app import create_app

# Load .env BEFORE Hydra resolves ${oc.env:...} references
load_dotenv()


def _resolve_public_dir(cfg: DictConfig) -> None:
    """Anchor a relative ``web.public_dir`` to the directory Hydra started in."""
    public_dir = Path(cfg.web.public_dir)
    if not public_dir.is_absolute():
        with open_dict(cfg):
            cfg.web.public_dir = str(Path(hydra.utils.get_original_cwd()) / public_dir)


@hydra.main(version_base=None, config_path="../../conf", config_name="config")
def main(cfg: DictConfig) -> None:
    """Bootstrap the application from Hydra config and run uvicorn."""
    _resolve_public_dir(cfg)

    # Hydra moved the CWD into outputs/; go back so relative paths behave
    os.chdir(hydra.utils.get_original_cwd())

    app = create_app(cfg)

    host: str = cfg.server.host
    port: int = cfg.server.port
    debug: bool = cfg.server.debug

    logger.info(
        "Starting server on {host}:{port} (debug={debug})",
        host=host,
        port=port,
        debug=debug,
    )

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="debug" if debug else "info",
    )


if __name__ == "__main__":
    main()
