from flask import Flask, jsonify
from config import Config
from app.extensions import db, login_manager, migrate, mail


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # Models must be registered before create_all / migrate
    from app import models  # noqa: F401

    from app.routes.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint)

    from app.routes.main import main as main_blueprint
    app.register_blueprint(main_blueprint)

    from app.routes.admin import admin as admin_blueprint
    app.register_blueprint(admin_blueprint, url_prefix='/admin')

    from app.services.errors import AlpineError

    @app.errorhandler(AlpineError)
    def handle_alpine_error(error):
        return jsonify(error.to_dict()), error.status_code

    return app


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'error': 'unauthenticated', 'message': 'Login required.'}), 401
