"""Application entry point for the Onboardly auth server."""

from onboardly.app import App
from onboardly.config import Config
from onboardly.logging import setup_logging
from onboardly.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
