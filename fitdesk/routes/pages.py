from flask import Blueprint, render_template, redirect, url_for, flash, make_response
from flask_login import current_user

from fitdesk.forms import LoginForm
from fitdesk.models.user import Role
from fitdesk.routes.auth import authenticate
from fitdesk.utils.errors import AuthenticationError
from fitdesk.utils.security import set_session_cookie, clear_session_cookie

pages_bp = Blueprint('pages', __name__)


@pages_bp.route('/login', methods=['GET', 'POST'])
def login():
    """Login page"""
    if current_user.is_authenticated:
        return redirect(Role.landing_page(current_user.role))

    form = LoginForm()

    if form.validate_on_submit():
        try:
            user, token = authenticate(form.email.data, form.password.data)
        except AuthenticationError as e:
            flash(e.message, 'danger')
            return redirect(url_for('pages.login'))

        response = redirect(Role.landing_page(user.role))
        return set_session_cookie(response, token)

    return render_template('auth/login.html', form=form)


@pages_bp.route('/logout')
def logout():
    """Logout"""
    flash('You have been signed out', 'info')
    response = make_response(redirect(url_for('pages.login')))
    return clear_session_cookie(response)


@pages_bp.route('/')
def index():
    # The gate redirects signed-in users by role before this runs
    return redirect(url_for('pages.login'))


@pages_bp.route('/admin')
def admin():
    """Super admin landing page"""
    return render_template('admin/index.html')


@pages_bp.route('/dashboard')
def dashboard():
    """Gym owner landing page"""
    gym = current_user.gym if current_user.is_authenticated else None
    return render_template('dashboard/index.html', gym=gym)
