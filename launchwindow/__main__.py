"""Launch Window entry point."""

import uvicorn

from launchwindow.api.app import create_app
from launchwindow.config import Config


def main() -> None:
    uvicorn.run(create_app(), host=Config.API_HOST, port=Config.API_PORT)


if __name__ == "__main__":
    main()
