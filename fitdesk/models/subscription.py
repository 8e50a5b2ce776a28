from datetime import datetime
from fitdesk import db


class SubscriptionPlan(db.Model):
    """Subscription plan - What a gym pays for the platform"""
    __tablename__ = 'subscription_plans'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration_in_days = db.Column(db.Integer, nullable=False, default=30)
    features = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    gyms = db.relationship('Gym', back_populates='subscription_plan', lazy='dynamic')

    def __repr__(self):
        return f'<SubscriptionPlan {self.name}>'

    @property
    def duration_text(self):
        """Human readable duration"""
        if self.duration_in_days == 30:
            return '1 month'
        elif self.duration_in_days == 90:
            return '3 months'
        elif self.duration_in_days == 180:
            return '6 months'
        elif self.duration_in_days == 365:
            return '1 year'
        return f'{self.duration_in_days} days'

    @property
    def gym_count(self):
        return self.gyms.count()

    def to_dict(self, gym_count=None):
        return {
            'id': self.id,
            'name': self.name,
            'price': float(self.price),
            'durationInDays': self.duration_in_days,
            'durationText': self.duration_text,
            'features': list(self.features or []),
            'gymCount': self.gym_count if gym_count is None else gym_count,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
