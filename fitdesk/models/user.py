from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from fitdesk import db, login_manager


class Role:
    """User roles"""
    SUPER_ADMIN = 'SUPER_ADMIN'
    GYM_OWNER = 'GYM_OWNER'

    ALL = (SUPER_ADMIN, GYM_OWNER)

    @staticmethod
    def landing_page(role):
        """Default page for a role"""
        return '/admin' if role == Role.SUPER_ADMIN else '/dashboard'


class User(UserMixin, db.Model):
    """User model - Super admins and gym owners"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20))
    password_hash = db.Column(db.String(255), nullable=False)

    # SUPER_ADMIN or GYM_OWNER
    role = db.Column(db.String(20), nullable=False, default=Role.GYM_OWNER)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    # Relationships
    gym = db.relationship('Gym', back_populates='owner', uselist=False)

    def __repr__(self):
        return f'<User {self.email}>'

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        """Check password"""
        return check_password_hash(self.password_hash, password)

    def update_last_login(self):
        """Update last login timestamp"""
        self.last_login = datetime.utcnow()
        db.session.commit()

    @property
    def is_gym_owner(self):
        return self.role == Role.GYM_OWNER

    @property
    def gym_id(self):
        """Tenant id for gym owners, None otherwise"""
        return self.gym.id if self.gym else None

    def token_claims(self):
        """Claims carried by the session token"""
        return {
            'sub': str(self.id),
            'email': self.email,
            'role': self.role,
            'gymId': self.gym_id,
        }


@login_manager.request_loader
def load_user_from_request(request):
    """Load the user named by the session token cookie"""
    from fitdesk.utils.security import get_session_claims

    claims = get_session_claims()
    if not claims:
        return None

    try:
        user = db.session.get(User, int(claims['sub']))
    except (KeyError, TypeError, ValueError):
        return None

    if user is None or user.role != claims.get('role'):
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    """Reject requests that need a signed-in user"""
    from fitdesk.utils.errors import AuthenticationError
    raise AuthenticationError()
