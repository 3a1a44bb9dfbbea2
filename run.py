#!/usr/bin/env python3
"""
Entry point for the Tenant Onboarding platform.

Usage:
    python run.py                    # Run onboarding API (default)
    python run.py api                # Run onboarding API explicitly
    python run.py reactor            # Run the provisioning worker

Environment Variables:
    APP_ENV: development, testing or production (default: development)
    PORT: Port to run the API on (default: 5000)
    REDIS_URL, TABLE_NAME: Registry location
    TEMPLATE_URL, STACK_SERVICE_ACCOUNT, GCP_PROJECT_ID, GCP_REGION: Stack backend
"""
import logging
import os
import signal
import sys

from shared.config import get_config


def configure_logging():
    cfg = get_config()
    logging.basicConfig(
        level=getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )


def run_api():
    """Run the tenant registration API."""
    from onboarding.app import create_app

    app = create_app()
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('APP_ENV', 'development') == 'development'

    logging.getLogger(__name__).info(f"Starting Onboarding API on port {port}...")
    app.run(host='0.0.0.0', port=port, debug=debug)


def run_reactor():
    """Run the provisioning worker until interrupted."""
    from provisioner.worker import create_worker

    worker = create_worker()

    def shutdown(signum, frame):
        worker.stop()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    worker.run_forever()


if __name__ == '__main__':
    configure_logging()
    mode = sys.argv[1] if len(sys.argv) > 1 else 'api'

    if mode == 'api':
        run_api()
    elif mode == 'reactor':
        run_reactor()
    else:
        print(f"Unknown mode: {mode}")
        print("Usage: python run.py [api|reactor]")
        sys.exit(1)
