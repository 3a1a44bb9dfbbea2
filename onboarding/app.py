import logging

from flask import Flask, request, jsonify

from shared.config import get_config
from .registration import RegistrationService, Outcome
from .registry import TenantRegistryClient

logger = logging.getLogger(__name__)

INVALID_BODY_MESSAGE = "Invalid input on name and/or description"


def create_app(config_name: str = None, registry: TenantRegistryClient = None) -> Flask:
    """Application factory for the tenant onboarding API."""
    cfg = get_config(config_name)

    app = Flask(__name__)
    app.config.from_object(cfg)

    # One registry client per process, reused across requests
    if registry is None:
        registry = TenantRegistryClient.from_config(cfg)
    app.registration = RegistrationService(registry)

    register_routes(app)
    register_error_handlers(app)

    return app


def render(outcome: Outcome):
    return jsonify(outcome.to_dict()), outcome.status_code


def register_routes(app: Flask):
    """Register the tenant API routes."""

    @app.route('/tenant', methods=['POST'], provide_automatic_options=False)
    def api_register_tenant():
        """Register a tenant; its stack is provisioned asynchronously."""
        data = request.get_json(silent=True)

        if not isinstance(data, dict) or 'Name' not in data or 'Description' not in data:
            logger.info(f"Rejected tenant request body: {request.get_data(as_text=True)[:500]}")
            return jsonify({'message': INVALID_BODY_MESSAGE}), 400

        name = data['Name']
        description = data['Description']
        if not isinstance(name, (str, type(None))) or not isinstance(description, str):
            return jsonify({'message': INVALID_BODY_MESSAGE}), 400

        return render(app.registration.register(name, description))

    @app.route('/tenant/<tenant_name>', methods=['DELETE'], provide_automatic_options=False)
    def api_deregister_tenant(tenant_name: str):
        """Deregister a tenant; its stack is decommissioned asynchronously."""
        return render(app.registration.deregister(tenant_name))


def register_error_handlers(app: Flask):
    """Every response is JSON, including unmatched routes."""

    @app.errorhandler(404)
    @app.errorhandler(405)
    def invalid_request(error):
        return jsonify({'message': 'Invalid request'}), 400

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled error: {error}")
        return jsonify({'message': 'Internal server error'}), 500
