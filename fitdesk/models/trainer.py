from datetime import datetime
from fitdesk import db


class Shift:
    MORNING = 'MORNING'
    EVENING = 'EVENING'
    CUSTOM = 'CUSTOM'

    ALL = (MORNING, EVENING, CUSTOM)


class SalaryType:
    FIXED = 'FIXED'
    PER_SESSION = 'PER_SESSION'

    ALL = (FIXED, PER_SESSION)


class Trainer(db.Model):
    """Trainer model - Staff trainers of one gym"""
    __tablename__ = 'trainers'

    id = db.Column(db.Integer, primary_key=True)
    gym_id = db.Column(db.Integer, db.ForeignKey('gyms.id'), nullable=False, index=True)

    full_name = db.Column(db.String(150), nullable=False)
    phone = db.Column(db.String(30))
    email = db.Column(db.String(120))
    specialization = db.Column(db.String(100))

    # Work schedule
    shift = db.Column(db.String(20), nullable=False, default=Shift.MORNING)
    shift_custom = db.Column(db.String(100))
    weekly_off = db.Column(db.JSON)  # e.g. ["SUNDAY"]

    salary_type = db.Column(db.String(20), nullable=False, default=SalaryType.FIXED)
    joining_date = db.Column(db.Date)
    profile_photo = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    attendance = db.relationship('TrainerAttendance', backref='trainer', lazy='dynamic',
                                 cascade='all, delete-orphan',
                                 order_by='TrainerAttendance.date')

    def __repr__(self):
        return f'<Trainer {self.full_name}>'

    def to_dict(self):
        from fitdesk.utils.helpers import format_date, format_datetime
        return {
            'id': self.id,
            'fullName': self.full_name,
            'phone': self.phone,
            'email': self.email,
            'specialization': self.specialization,
            'shift': self.shift,
            'shiftCustom': self.shift_custom,
            'weeklyOff': self.weekly_off,
            'salaryType': self.salary_type,
            'joiningDate': format_date(self.joining_date),
            'profilePhoto': self.profile_photo,
            'createdAt': format_datetime(self.created_at),
        }
