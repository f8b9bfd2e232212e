# app/__main__.py

import argparse
import logging

import uvicorn

from .config import configure_logging, load_settings
from .main import create_app

logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the Receipt Scanner API.")
    parser.add_argument("--profile", default=None,
                        help="environment profile; loads .env.<profile> over .env (e.g. local, production)")
    args = parser.parse_args(argv)

    configure_logging()
    settings = load_settings(args.profile)
    configure_logging(settings.LOG_LEVEL)

    logger.info("Starting server on http://%s:%s", settings.HOST, settings.PORT)
    logger.info("POST /receipts (date, payer, paymentMethod, receiptImage)")
    logger.info("GET /receipts/{id}, GET /health")
    uvicorn.run(create_app(settings=settings), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
