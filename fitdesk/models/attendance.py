from datetime import datetime
from fitdesk import db


class AttendanceStatus:
    PRESENT = 'PRESENT'
    ABSENT = 'ABSENT'
    LATE = 'LATE'

    ALL = (PRESENT, ABSENT, LATE)


class TrainerAttendance(db.Model):
    """Trainer attendance - One record per trainer per day"""
    __tablename__ = 'trainer_attendance'

    id = db.Column(db.Integer, primary_key=True)
    trainer_id = db.Column(db.Integer, db.ForeignKey('trainers.id'), nullable=False)

    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=AttendanceStatus.PRESENT)
    check_in_time = db.Column(db.DateTime)
    check_out_time = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('trainer_id', 'date', name='unique_trainer_attendance'),
        db.Index('idx_trainer_attendance_date', 'date'),
    )

    def __repr__(self):
        return f'<TrainerAttendance {self.trainer_id} - {self.date}>'

    @property
    def working_hours(self):
        """Worked time as H:MM, None without both times"""
        if self.check_in_time and self.check_out_time:
            diff = self.check_out_time - self.check_in_time
            hours = diff.seconds // 3600
            minutes = (diff.seconds % 3600) // 60
            return f'{hours}:{minutes:02d}'
        return None

    @classmethod
    def upsert(cls, trainer_id, day, status, check_in_time=None, check_out_time=None):
        """Create or update the record of a trainer for a day"""
        record = cls.query.filter_by(trainer_id=trainer_id, date=day).first()
        if record is None:
            record = cls(trainer_id=trainer_id, date=day, status=status,
                         check_in_time=check_in_time, check_out_time=check_out_time)
            db.session.add(record)
        else:
            record.status = status
            if check_in_time is not None:
                record.check_in_time = check_in_time
            if check_out_time is not None:
                record.check_out_time = check_out_time
        return record

    def to_dict(self):
        return {
            'id': self.id,
            'date': self.date.isoformat(),
            'status': self.status,
            'checkInTime': self.check_in_time.isoformat() if self.check_in_time else None,
            'checkOutTime': self.check_out_time.isoformat() if self.check_out_time else None,
            'workingHours': self.working_hours,
        }
