import os
from flask import Flask, jsonify, request

from config import Config
from models import Admin
from utils.extensions import db, login_manager, migrate, csrf
from utils.staging import StagingRegistry


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    os.makedirs(app.config['EXPORT_FOLDER'], exist_ok=True)

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)

    # One staging registry per process; workspaces are keyed by (source, target) year
    app.extensions['placement_staging'] = StagingRegistry()

    # Import blueprints after extensions are bound
    from admin_routes import admin_bp
    from utils.auth_routes import auth_bp

    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(auth_bp)

    @app.after_request
    def set_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        return response

    @app.before_request
    def initialize_database():
        if app.extensions.get('placement_db_ready'):
            return
        db.create_all()

        super_admin = Admin.query.filter_by(username=app.config['SUPER_ADMIN_USERNAME']).first()
        if not super_admin:
            admin = Admin(username=app.config['SUPER_ADMIN_USERNAME'], admin_id=app.config['SUPER_ADMIN_ID'])
            admin.set_password(app.config['SUPER_ADMIN_PASSWORD'])
            db.session.add(admin)
            db.session.commit()
            app.logger.info("SuperAdmin created.")
        app.extensions['placement_db_ready'] = True

    return app


@login_manager.user_loader
def load_user(user_id):
    if user_id.startswith("admin:"):
        return Admin.query.filter_by(admin_id=user_id.split(":", 1)[1]).first()
    return None


@login_manager.unauthorized_handler
def unauthorized_callback():
    return jsonify(success=False, error='Login required', path=request.path), 401


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)
