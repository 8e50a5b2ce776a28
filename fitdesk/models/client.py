from datetime import datetime, date
from fitdesk import db


class SubscriptionStatus:
    ACTIVE = 'ACTIVE'
    EXPIRED = 'EXPIRED'
    CANCELLED = 'CANCELLED'

    ALL = (ACTIVE, EXPIRED, CANCELLED)


class Client(db.Model):
    """Client model - Gym members of one tenant"""
    __tablename__ = 'clients'

    id = db.Column(db.Integer, primary_key=True)
    gym_id = db.Column(db.Integer, db.ForeignKey('gyms.id'), nullable=False, index=True)

    # Basic info
    full_name = db.Column(db.String(150), nullable=False)
    phone = db.Column(db.String(30))
    email = db.Column(db.String(120))
    address = db.Column(db.Text)
    date_of_birth = db.Column(db.Date)
    profile_photo = db.Column(db.String(255))
    join_date = db.Column(db.Date, nullable=False, default=date.today)

    # Subscription
    subscription_start_date = db.Column(db.Date)
    subscription_end_date = db.Column(db.Date)
    subscription_status = db.Column(db.String(20), nullable=False, default=SubscriptionStatus.ACTIVE)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    payments = db.relationship('Payment', backref='client', lazy='dynamic',
                               cascade='all, delete-orphan',
                               order_by='desc(Payment.payment_date)')

    __table_args__ = (
        db.Index('idx_client_gym_status', 'gym_id', 'subscription_status'),
    )

    def __repr__(self):
        return f'<Client {self.full_name}>'

    @property
    def effective_status(self):
        """Stored status, except an ACTIVE subscription past its end date is EXPIRED"""
        if (self.subscription_status == SubscriptionStatus.ACTIVE
                and self.subscription_end_date
                and self.subscription_end_date < date.today()):
            return SubscriptionStatus.EXPIRED
        return self.subscription_status

    @property
    def days_until_expiry(self):
        """Whole days until the end date, negative once past"""
        if not self.subscription_end_date:
            return None
        return (self.subscription_end_date - date.today()).days

    @property
    def paid_from_payments(self):
        """Sum of recorded payments"""
        from .payment import Payment
        total = db.session.query(db.func.coalesce(db.func.sum(Payment.amount), 0)).filter(
            Payment.client_id == self.id
        ).scalar()
        return float(total or 0)

    def to_dict(self, include_payments=False, amount_paid=None):
        """
        JSON shape of a client

        Args:
            include_payments: embed the payment history
            amount_paid: precomputed sum of payments, queried when omitted
        """
        from fitdesk.utils.helpers import format_date, format_datetime, upload_url

        paid = self.paid_from_payments if amount_paid is None else amount_paid
        total = float(self.total_amount or 0)
        data = {
            'id': self.id,
            'gymId': self.gym_id,
            'fullName': self.full_name,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'dateOfBirth': format_date(self.date_of_birth),
            'profilePhoto': upload_url(self.profile_photo),
            'joinDate': format_date(self.join_date),
            'subscriptionStartDate': format_date(self.subscription_start_date),
            'subscriptionEndDate': format_date(self.subscription_end_date),
            'subscriptionStatus': self.subscription_status,
            'effectiveStatus': self.effective_status,
            'daysUntilExpiry': self.days_until_expiry,
            'totalAmount': total,
            'amountPaid': paid,
            'recordedAmountPaid': float(self.amount_paid or 0),
            'pendingAmount': max(0.0, total - paid),
            'createdAt': format_datetime(self.created_at),
        }
        if include_payments:
            data['payments'] = [p.to_dict() for p in self.payments]
        return data
