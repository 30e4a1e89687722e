"""
============================================================
 Blowout — Flask Application Factory
============================================================
"""

from flask import Flask
from flask_socketio import SocketIO

socketio = SocketIO()


def create_app(engine=None, load_model: bool = True):
    """Create and configure the Flask application.

    Pass an ``engine`` to reuse one (tests do); otherwise a fresh Engine
    is built and its model loads on a background thread.
    """
    app = Flask(__name__)

    import config
    app.config["SECRET_KEY"] = config.FLASK_SECRET_KEY

    socketio.init_app(app, async_mode="threading", cors_allowed_origins="*")

    from blowout.routes import register_routes
    register_routes(app, socketio, engine=engine, load_model=load_model)

    return app
