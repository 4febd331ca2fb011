#!/usr/bin/env python3
"""NIM Proxy - OpenAI-compatible front end for the NVIDIA NIM API."""

import os
import sys
import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

from config import Config, ConfigError
from request_log import RequestLog
from handlers import proxy_bp, service_bp


def create_app(config: Optional[Config] = None) -> Flask:
    """
    Create and configure the Flask application.

    Raises ConfigError when no config is given and the environment lacks
    the NIM credential.
    """
    if config is None:
        config = Config()

    app = Flask(__name__)
    CORS(app)

    app.config['NIM_CONFIG'] = config

    request_log = RequestLog()
    app.config['REQUEST_LOG'] = request_log

    app.register_blueprint(proxy_bp)
    app.register_blueprint(service_bp)

    request_log.record_event('info', 'NIM proxy started', config.to_dict())

    return app


def main():
    """Main entry point."""
    try:
        app = create_app()
    except ConfigError as e:
        logger.error(f"FATAL ERROR: {e}")
        logger.error("Fix the environment (see .env.example) before running the server.")
        logger.error("Example: NIM_API_KEY=your_api_key_here nim-proxy")
        sys.exit(1)

    config = app.config['NIM_CONFIG']

    print()
    print("=" * 60)
    print("  NIM Proxy - OpenAI to NVIDIA NIM API")
    print("=" * 60)
    print()
    print(f"  Proxy URL:  http://localhost:{config.port}/v1/chat/completions")
    print(f"  Target:     {config.nim_api_base}")
    print(f"  Models:     {', '.join(config.model_mapping)}")
    print(f"  Fallback:   {config.fallback_model}")
    print()
    print("=" * 60)
    print()

    try:
        app.run(
            host=config.host,
            port=config.port,
            debug=False,
            threaded=True
        )
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
