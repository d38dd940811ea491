"""Run the Audio Store API with uvicorn.

Usage:
    python -m services.audio_api
"""

import logging

import uvicorn

from audio_store import config


def main() -> None:
    logging.basicConfig(level=config.get_log_level())
    host, port = config.get_bind_address()
    uvicorn.run("services.audio_api.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
