#!/usr/bin/env python3
"""
Initialize database with demo data
"""
import os
from datetime import date, datetime, timedelta

from fitdesk import create_app, db
from fitdesk.models.user import User, Role
from fitdesk.models.gym import Gym
from fitdesk.models.subscription import SubscriptionPlan
from fitdesk.models.client import Client, SubscriptionStatus
from fitdesk.models.payment import Payment

basedir = os.path.abspath(os.path.dirname(__file__))
os.makedirs(os.path.join(basedir, 'instance'), exist_ok=True)

app = create_app(os.getenv('FLASK_ENV', 'development'))

with app.app_context():
    db.create_all()

    # Check if already initialized
    if User.query.filter_by(role=Role.SUPER_ADMIN).first():
        print("Database already initialized!")
    else:
        print("Initializing database...")

        admin = User(name='Super Admin', email='admin@fitdesk.com', role=Role.SUPER_ADMIN)
        admin.set_password('admin123')
        db.session.add(admin)

        basic = SubscriptionPlan(name='Basic', price=999, duration_in_days=30,
                                 features=['Up to 50 clients', 'Basic reports'])
        pro = SubscriptionPlan(name='Pro', price=2499, duration_in_days=30,
                               features=['Unlimited clients', 'AI Insights', 'XLSX export',
                                         'Priority support'])
        db.session.add_all([basic, pro])
        db.session.commit()
        print("Created super admin and subscription plans")

        owner = User(name='Gym Owner', email='owner@gym.com', phone='9876543210',
                     role=Role.GYM_OWNER)
        owner.set_password('owner123')
        db.session.add(owner)
        db.session.flush()

        today = date.today()
        gym = Gym(
            name='Demo Gym',
            owner_id=owner.id,
            subscription_plan_id=pro.id,
            subscription_start_date=today,
            subscription_end_date=today + timedelta(days=pro.duration_in_days),
            is_active=True
        )
        db.session.add(gym)
        db.session.flush()

        clients = [
            Client(gym_id=gym.id, full_name='Alice Kumar', phone='9123456780',
                   email='alice@example.com', join_date=today - timedelta(days=60),
                   subscription_start_date=today - timedelta(days=60),
                   subscription_end_date=today + timedelta(days=5),
                   subscription_status=SubscriptionStatus.ACTIVE,
                   total_amount=3000, amount_paid=1000),
            Client(gym_id=gym.id, full_name='Bob Singh', phone='9123456781',
                   join_date=today - timedelta(days=120),
                   subscription_start_date=today - timedelta(days=120),
                   subscription_end_date=today - timedelta(days=30),
                   subscription_status=SubscriptionStatus.EXPIRED,
                   total_amount=2500, amount_paid=0),
            Client(gym_id=gym.id, full_name='Carol Reddy', phone='9123456782',
                   join_date=today - timedelta(days=10),
                   subscription_start_date=today - timedelta(days=10),
                   subscription_end_date=today + timedelta(days=80),
                   subscription_status=SubscriptionStatus.ACTIVE,
                   total_amount=6000, amount_paid=0),
        ]
        db.session.add_all(clients)
        db.session.flush()

        db.session.add(Payment(client_id=clients[0].id, amount=1000, payment_method='Cash',
                               payment_date=datetime.utcnow() - timedelta(days=3)))
        db.session.commit()
        print("Created demo gym with 3 clients")

        print("\n" + "=" * 50)
        print("Database initialized successfully!")
        print("=" * 50)
        print("\nLogin credentials:")
        print("  Super admin: admin@fitdesk.com / admin123")
        print("  Gym owner:   owner@gym.com / owner123")
        print("\nYou can now run: python run.py")
