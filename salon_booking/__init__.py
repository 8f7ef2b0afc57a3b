# Import important modules and create app package
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_mail import Mail
from dotenv import load_dotenv
import os

# Load environment variables
load_dotenv()

# Initialize extensions
# Aggregates are read right after commits, so loaded state is kept instead of expired
db = SQLAlchemy(session_options={'expire_on_commit': False})
login_manager = LoginManager()
migrate = Migrate()
mail = Mail()


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes', 'on')


def _engine_options(database_uri):
    options = {'pool_pre_ping': True}
    # SQLite transactions are opened with BEGIN IMMEDIATE by salon_booking.database
    if not database_uri.startswith('sqlite'):
        options['isolation_level'] = 'SERIALIZABLE'
    return options


def create_app(test_config=None):
    # Initialize app
    app = Flask(__name__)

    # Configure app
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-key')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///salon_booking.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Transaction boundary
    app.config['TRANSACTION_TIMEOUT_SECONDS'] = float(os.environ.get('TRANSACTION_TIMEOUT_SECONDS', '5'))
    app.config['TRANSACTION_READ_RETRIES'] = int(os.environ.get('TRANSACTION_READ_RETRIES', '2'))

    # Booking rules
    app.config['BOOKING_REJECT_UNKNOWN_SERVICES'] = _env_flag('BOOKING_REJECT_UNKNOWN_SERVICES', True)
    app.config['BOOKING_PREVENT_OVERLAP'] = _env_flag('BOOKING_PREVENT_OVERLAP', True)

    # Tokens
    app.config['ACCESS_TOKEN_MAX_AGE'] = int(os.environ.get('ACCESS_TOKEN_MAX_AGE', '900'))
    app.config['REFRESH_TOKEN_DAYS'] = int(os.environ.get('REFRESH_TOKEN_DAYS', '7'))
    app.config['PASSWORD_RESET_MAX_AGE'] = int(os.environ.get('PASSWORD_RESET_MAX_AGE', '3600'))
    app.config['PASSWORD_RESET_TIMEOUT_SECONDS'] = float(os.environ.get('PASSWORD_RESET_TIMEOUT_SECONDS', '15'))
    app.config['PASSWORD_RESET_THROTTLE_SECONDS'] = int(os.environ.get('PASSWORD_RESET_THROTTLE_SECONDS', '60'))
    app.config['REDIS_URL'] = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
    app.config['FRONTEND_URL'] = os.environ.get('FRONTEND_URL', 'http://localhost:5173')

    # Mail
    app.config['MAIL_SERVER'] = os.environ.get('MAIL_SERVER', 'localhost')
    app.config['MAIL_PORT'] = int(os.environ.get('MAIL_PORT', '25'))
    app.config['MAIL_USE_TLS'] = _env_flag('MAIL_USE_TLS', False)
    app.config['MAIL_USERNAME'] = os.environ.get('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.environ.get('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.environ.get('MAIL_DEFAULT_SENDER', 'Salon Booking <noreply@salon.local>')

    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')

    if test_config:
        app.config.update(test_config)
    app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', _engine_options(app.config['SQLALCHEMY_DATABASE_URI']))

    from salon_booking.utils.request_id import init_request_id
    from salon_booking.utils.responses import register_error_handlers
    init_request_id(app)
    register_error_handlers(app)

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # Authentication and domain components, built once per app
    from salon_booking import database, booking, accounts, cli
    from salon_booking.auth import tokens
    database.init_app(app)
    tokens.init_app(app)
    booking.init_app(app)
    accounts.init_app(app)
    cli.init_app(app)

    # Register blueprints
    from salon_booking.auth.routes import auth_bp
    from salon_booking.appointments.routes import appointments_bp
    from salon_booking.users.routes import users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(appointments_bp)
    app.register_blueprint(users_bp)

    # Create database tables
    with app.app_context():
        import salon_booking.models  # noqa: F401
        db.create_all()
        app.logger.info('Database tables ready')

    return app
