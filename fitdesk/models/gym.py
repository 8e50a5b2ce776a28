from datetime import datetime, date
from fitdesk import db


class Gym(db.Model):
    """Gym model - One tenant, owned by a single gym owner"""
    __tablename__ = 'gyms'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)

    # Platform subscription
    subscription_plan_id = db.Column(db.Integer, db.ForeignKey('subscription_plans.id'), nullable=True)
    subscription_start_date = db.Column(db.Date)
    subscription_end_date = db.Column(db.Date)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Invoice settings
    invoice_logo_url = db.Column(db.String(255))
    invoice_address = db.Column(db.Text)
    invoice_phone = db.Column(db.String(30))
    invoice_email = db.Column(db.String(120))
    gst_number = db.Column(db.String(30))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    owner = db.relationship('User', back_populates='gym')
    subscription_plan = db.relationship('SubscriptionPlan', back_populates='gyms')
    clients = db.relationship('Client', backref='gym', lazy='dynamic',
                              cascade='all, delete-orphan')
    trainers = db.relationship('Trainer', backref='gym', lazy='dynamic',
                               cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Gym {self.name}>'

    @property
    def days_until_expiry(self):
        if not self.subscription_end_date:
            return None
        return (self.subscription_end_date - date.today()).days

    def invoice_settings(self):
        from fitdesk.utils.helpers import upload_url
        return {
            'name': self.name,
            'invoiceLogoUrl': upload_url(self.invoice_logo_url),
            'invoiceAddress': self.invoice_address,
            'invoicePhone': self.invoice_phone,
            'invoiceEmail': self.invoice_email,
            'gstNumber': self.gst_number,
        }

    def to_dict(self):
        from fitdesk.utils.helpers import format_date, format_datetime
        plan = self.subscription_plan
        owner = self.owner
        return {
            'id': self.id,
            'name': self.name,
            'isActive': self.is_active,
            'subscriptionStartDate': format_date(self.subscription_start_date),
            'subscriptionEndDate': format_date(self.subscription_end_date),
            'createdAt': format_datetime(self.created_at),
            'owner': {
                'id': owner.id,
                'name': owner.name,
                'email': owner.email,
                'phone': owner.phone,
            } if owner else None,
            'subscriptionPlan': {
                'id': plan.id,
                'name': plan.name,
                'price': float(plan.price),
            } if plan else None,
            'clientCount': self.clients.count(),
        }
