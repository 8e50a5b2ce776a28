from datetime import datetime
from fitdesk import db


class Payment(db.Model):
    """Payment received from a client"""
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    payment_method = db.Column(db.String(50))  # Cash, UPI, Card ...

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('idx_payment_date', 'payment_date'),
    )

    def __repr__(self):
        return f'<Payment {self.client_id} - {self.amount}>'

    def to_dict(self, include_client=False):
        data = {
            'id': self.id,
            'clientId': self.client_id,
            'amount': float(self.amount),
            'paymentDate': self.payment_date.isoformat() if self.payment_date else None,
            'paymentMethod': self.payment_method,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
        if include_client:
            data['client'] = {'id': self.client.id, 'fullName': self.client.full_name}
        return data
