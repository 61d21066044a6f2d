from flask import Blueprint, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from forms import AdminLoginForm
from models import Admin
from utils.serializers import serialize_admin

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def admin_login():
    form = AdminLoginForm()
    if not form.validate_on_submit():
        return jsonify(success=False, errors=form.errors), 400

    username = form.username.data.strip()
    admin_id = form.user_id.data.strip()
    password = form.password.data.strip()

    admin = Admin.query.filter_by(admin_id=admin_id).first()
    if admin and admin.username.lower() == username.lower() and admin.check_password(password):
        login_user(admin)
        current_app.logger.info("Admin %s logged in", admin.admin_id)
        return jsonify(success=True, admin=serialize_admin(admin))

    current_app.logger.warning("Failed admin login for id %s", admin_id)
    return jsonify(success=False, error='Invalid admin login credentials.'), 401


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    admin_id = getattr(current_user, 'admin_id', None)
    logout_user()
    current_app.logger.info("Admin %s logged out", admin_id)
    return jsonify(success=True)


@auth_bp.route('/csrf-token')
def csrf_token():
    return jsonify(csrf_token=generate_csrf())
