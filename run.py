#!/usr/bin/env python3
"""
Main entry point for FitDesk
"""
import os
from fitdesk import create_app, db
from fitdesk.models.user import User, Role
from fitdesk.models.gym import Gym
from fitdesk.models.subscription import SubscriptionPlan
from fitdesk.models.client import Client
from fitdesk.models.payment import Payment
from fitdesk.models.trainer import Trainer
from fitdesk.models.attendance import TrainerAttendance

basedir = os.path.abspath(os.path.dirname(__file__))
os.makedirs(os.path.join(basedir, 'instance'), exist_ok=True)

# Create the Flask application
app = create_app(os.getenv('FLASK_ENV', 'development'))


@app.shell_context_processor
def make_shell_context():
    """Make database models available in flask shell"""
    return {
        'db': db,
        'User': User,
        'Role': Role,
        'Gym': Gym,
        'SubscriptionPlan': SubscriptionPlan,
        'Client': Client,
        'Payment': Payment,
        'Trainer': Trainer,
        'TrainerAttendance': TrainerAttendance
    }


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5001, debug=True, use_reloader=False)
