from flask import Flask, jsonify, render_template

from .config import Settings


def create_app(settings=None):
    """Builds the Flask application from environment settings."""
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["DEBUG"] = settings.debug
    app.logger.setLevel(settings.log_level)

    @app.route('/')
    def index():
        """Serves the default landing page."""
        return render_template('index.html', app_name=settings.app_name, env=settings.env)

    # --- Probes wired to the Deployment manifest ---
    @app.route('/healthz')
    def liveness():
        return jsonify(status="ok"), 200

    @app.route('/readyz')
    def readiness():
        return jsonify(status="ready"), 200

    app.logger.info(f"Starting {settings.app_name} in {settings.env} mode on {settings.bind}")
    return app


app = create_app()
