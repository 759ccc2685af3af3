import logging
from flask import Flask, jsonify
from cloudpipe.config import Config
from cloudpipe.db import init_db
from cloudpipe.routes.cluster import cluster_bp
from cloudpipe.routes.spotguide import spotguide_bp
from cloudpipe.exceptions import ServiceException

logger = logging.getLogger(__name__)


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    init_db(app)

    # Register blueprints
    app.register_blueprint(cluster_bp, url_prefix='/clusters')
    app.register_blueprint(spotguide_bp, url_prefix='/spotguides')

    # Global error handler for ServiceException
    @app.errorhandler(ServiceException)
    def handle_service_exception(error):
        if error.status_code >= 500:
            logger.error(f"{error.error_code}: {error} {error.context}", exc_info=error)
        response = {
            'error': True,
            'message': str(error),
            'error_code': error.error_code,
            'status_code': error.status_code
        }
        return jsonify(response), error.status_code

    @app.errorhandler(500)
    def handle_internal_error(error):
        return jsonify({'message': 'Internal server error'}), 500

    return app
