import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect

from .config import config

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()

# Login configuration
login_manager.login_view = 'pages.login'

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Application factory"""
    import os
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    configure_logging(app)

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Register models with SQLAlchemy
    from . import models  # noqa: F401

    from .utils.notifications import NotificationBus
    app.extensions['notifications'] = NotificationBus(
        limit=app.config['NOTIFICATION_LIMIT'],
        subscriber_limit=app.config['NOTIFICATION_SUBSCRIBER_LIMIT']
    )

    # Authorization gate runs before every request
    from .utils.gate import register_gate
    register_gate(app)

    # Register blueprints
    from .routes.pages import pages_bp
    from .routes.auth import auth_bp
    from .routes.admin import admin_bp
    from .routes.clients import clients_bp
    from .routes.payments import payments_bp
    from .routes.trainers import trainers_bp
    from .routes.reports import reports_bp
    from .routes.dashboard import dashboard_bp

    app.register_blueprint(pages_bp)
    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(clients_bp, url_prefix='/api/dashboard/clients')
    app.register_blueprint(payments_bp, url_prefix='/api/dashboard/payments')
    app.register_blueprint(trainers_bp, url_prefix='/api/dashboard/trainers')
    app.register_blueprint(reports_bp, url_prefix='/api/dashboard/reports')
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')

    # JSON API authenticates with the session token cookie
    for blueprint in (auth_bp, admin_bp, clients_bp, payments_bp,
                      trainers_bp, reports_bp, dashboard_bp):
        csrf.exempt(blueprint)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    return app


def configure_logging(app):
    """Configure application logging"""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    logging.getLogger('fitdesk').setLevel(level)
    app.logger.setLevel(level)


def register_error_handlers(app):
    """Register error handlers"""
    from flask import jsonify, render_template, request
    from werkzeug.exceptions import HTTPException
    from .utils.errors import APIError

    def wants_json():
        return request.path.startswith('/api/')

    @app.errorhandler(APIError)
    def api_error(error):
        if error.status_code >= 500:
            logger.error('%s on %s: %s', type(error).__name__, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        if wants_json():
            return jsonify({'error': error.description or error.name}), error.code
        if error.code in (403, 404):
            return render_template(f'errors/{error.code}.html'), error.code
        return error

    @app.errorhandler(Exception)
    def internal_error(error):
        db.session.rollback()
        logger.exception('Unhandled error on %s %s', request.method, request.path)
        if wants_json():
            return jsonify({'error': 'Server error'}), 500
        return render_template('errors/500.html'), 500


def register_cli_commands(app):
    """Register CLI commands"""
    import click

    @app.cli.command('create-admin')
    @click.option('--email', prompt='Email', help='Admin email')
    @click.option('--password', prompt='Password', hide_input=True, help='Admin password')
    @click.option('--name', prompt='Name', help='Admin name')
    def create_admin(email, password, name):
        """Create a super admin user"""
        from .models.user import User, Role

        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            click.echo('A user with this email already exists!')
            return

        if len(password) < 6:
            click.echo('Password must be at least 6 characters')
            return

        user = User(name=name.strip(), email=email, role=Role.SUPER_ADMIN)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()

        click.echo(f'Created super admin: {email}')

    @app.cli.command('init-db')
    def init_db():
        """Create tables and default subscription plans"""
        from .models.subscription import SubscriptionPlan

        db.create_all()

        plans_data = [
            ('Basic', 999, 30, ['Up to 50 clients', 'Basic reports']),
            ('Pro', 2499, 30, ['Unlimited clients', 'AI Insights', 'XLSX export', 'Priority support']),
        ]

        for name, price, duration, features in plans_data:
            if not SubscriptionPlan.query.filter_by(name=name).first():
                plan = SubscriptionPlan(name=name, price=price, duration_in_days=duration,
                                        features=features)
                db.session.add(plan)
                click.echo(f'Created plan: {name}')

        db.session.commit()
        click.echo('Database initialized successfully!')
