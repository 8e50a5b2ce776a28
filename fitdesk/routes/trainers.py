import logging
from datetime import date

from flask import Blueprint, request, jsonify

from fitdesk import db
from fitdesk.forms import (
    TrainerForm, TrainerCreateForm, AttendanceForm, BulkAttendanceForm, clean
)
from fitdesk.models.trainer import Trainer, Shift, SalaryType
from fitdesk.models.attendance import TrainerAttendance, AttendanceStatus
from fitdesk.utils.decorators import gym_owner_required, current_gym_id
from fitdesk.utils.errors import NotFoundError
from fitdesk.utils.helpers import parse_date_param, month_start, month_end
from fitdesk.utils.insights import round_half_up
from fitdesk.utils.notifications import notify

logger = logging.getLogger(__name__)

trainers_bp = Blueprint('trainers', __name__)

TEXT_FIELDS = (
    ('phone', 'phone'),
    ('email', 'email'),
    ('specialization', 'specialization'),
    ('shiftCustom', 'shift_custom'),
    ('profilePhoto', 'profile_photo'),
)


def get_trainer_or_404(trainer_id):
    trainer = Trainer.query.filter_by(id=trainer_id, gym_id=current_gym_id()).first()
    if trainer is None:
        raise NotFoundError('Trainer not found')
    return trainer


def attendance_percent(present, late, total):
    """Share of days present, late arrivals included"""
    if not total:
        return 0
    return round_half_up((present + late) / total * 100)


def month_summaries(trainer_ids, today):
    """Present/absent/late counts per trainer for the current month"""
    summaries = {tid: {'present': 0, 'absent': 0, 'late': 0} for tid in trainer_ids}
    if not trainer_ids:
        return summaries

    records = TrainerAttendance.query.filter(
        TrainerAttendance.trainer_id.in_(trainer_ids),
        TrainerAttendance.date >= month_start(today),
        TrainerAttendance.date <= month_end(today)
    ).all()

    for record in records:
        summary = summaries[record.trainer_id]
        if record.status == AttendanceStatus.PRESENT:
            summary['present'] += 1
        elif record.status == AttendanceStatus.ABSENT:
            summary['absent'] += 1
        else:
            summary['late'] += 1

    for summary in summaries.values():
        total = summary['present'] + summary['absent'] + summary['late']
        summary['percent'] = attendance_percent(summary['present'], summary['late'], total)
    return summaries


def today_statuses(trainer_ids, today):
    if not trainer_ids:
        return {}
    records = TrainerAttendance.query.filter(
        TrainerAttendance.trainer_id.in_(trainer_ids),
        TrainerAttendance.date == today
    ).all()
    return {r.trainer_id: r.status for r in records}


@trainers_bp.route('')
@gym_owner_required
def index():
    """
    List trainers with today's status and this month's attendance

    Query params: search, shift, specialization,
    statusToday (present|absent), sort (name|joinDate|attendance)
    """
    search = request.args.get('search', '').strip()
    shift = request.args.get('shift', '').upper()
    specialization = request.args.get('specialization', '').strip()
    status_today = request.args.get('statusToday', '').lower()
    sort = request.args.get('sort', 'name')

    query = Trainer.query.filter_by(gym_id=current_gym_id())
    if search:
        query = query.filter(Trainer.full_name.ilike(f'%{search}%'))
    if shift in Shift.ALL:
        query = query.filter(Trainer.shift == shift)
    if specialization:
        query = query.filter(Trainer.specialization == specialization)

    if sort == 'joinDate':
        query = query.order_by(Trainer.joining_date.desc())
    else:
        query = query.order_by(Trainer.full_name.asc())

    trainers = query.all()
    today = date.today()
    ids = [t.id for t in trainers]
    statuses = today_statuses(ids, today)
    summaries = month_summaries(ids, today)

    if status_today == 'present':
        trainers = [t for t in trainers
                    if statuses.get(t.id) in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)]
    elif status_today == 'absent':
        trainers = [t for t in trainers if statuses.get(t.id) == AttendanceStatus.ABSENT]

    items = []
    for trainer in trainers:
        data = trainer.to_dict()
        data['attendanceCount'] = trainer.attendance.count()
        data['todayStatus'] = statuses.get(trainer.id)
        data['monthSummary'] = summaries[trainer.id]
        items.append(data)

    if sort == 'attendance':
        items.sort(key=lambda t: t['monthSummary']['percent'], reverse=True)

    return jsonify({'trainers': items})


@trainers_bp.route('', methods=['POST'])
@gym_owner_required
def create():
    """Add a trainer"""
    form = TrainerCreateForm.from_json().validate_or_raise()
    gym_id = current_gym_id()

    trainer = Trainer(
        gym_id=gym_id,
        full_name=form.fullName.data.strip(),
        shift=form.shift.data or Shift.MORNING,
        salary_type=form.salaryType.data or SalaryType.FIXED,
        weekly_off=form.weeklyOff.data or None,
        joining_date=form.joiningDate.data
    )
    for field, attr in TEXT_FIELDS:
        setattr(trainer, attr, clean(form[field].data))

    db.session.add(trainer)
    db.session.commit()

    logger.info('Gym %s added trainer %s', gym_id, trainer.id)
    notify(gym_id, 'Trainer added', f'{trainer.full_name} joined the team')

    return jsonify(trainer.to_dict()), 201


@trainers_bp.route('/<int:trainer_id>', methods=['PATCH'])
@gym_owner_required
def edit(trainer_id):
    """Update the fields that were sent"""
    trainer = get_trainer_or_404(trainer_id)
    form = TrainerForm.from_json().validate_or_raise()

    if form.provided('fullName'):
        trainer.full_name = form.fullName.data.strip()
    for field, attr in TEXT_FIELDS:
        if form.provided(field):
            setattr(trainer, attr, clean(form[field].data))
    if form.shift.data:
        trainer.shift = form.shift.data
    if form.salaryType.data:
        trainer.salary_type = form.salaryType.data
    if form.provided('weeklyOff'):
        trainer.weekly_off = [v for v in form.weeklyOff.data if v]
    if form.provided('joiningDate'):
        trainer.joining_date = form.joiningDate.data

    db.session.commit()
    logger.info('Gym %s updated trainer %s', trainer.gym_id, trainer.id)

    return jsonify(trainer.to_dict())


@trainers_bp.route('/<int:trainer_id>', methods=['DELETE'])
@gym_owner_required
def delete(trainer_id):
    """Delete trainer and attendance records"""
    trainer = get_trainer_or_404(trainer_id)
    db.session.delete(trainer)
    db.session.commit()

    logger.info('Gym %s deleted trainer %s', current_gym_id(), trainer_id)
    return jsonify({'ok': True})


@trainers_bp.route('/<int:trainer_id>/attendance')
@gym_owner_required
def attendance(trainer_id):
    """Attendance records between from and to, both default to today"""
    trainer = get_trainer_or_404(trainer_id)

    start = parse_date_param(request.args.get('from')) or date.today()
    end = parse_date_param(request.args.get('to')) or start
    if start > end:
        start, end = end, start

    records = trainer.attendance.filter(
        TrainerAttendance.date >= start,
        TrainerAttendance.date <= end
    ).all()

    return jsonify({'attendance': [r.to_dict() for r in records]})


@trainers_bp.route('/<int:trainer_id>/attendance', methods=['POST'])
@gym_owner_required
def mark_attendance(trainer_id):
    """Mark one trainer for one day, replacing an existing mark"""
    trainer = get_trainer_or_404(trainer_id)
    form = AttendanceForm.from_json().validate_or_raise()

    record = TrainerAttendance.upsert(
        trainer.id, form.date.data, form.resolved_status(),
        check_in_time=form.checkInTime.data,
        check_out_time=form.checkOutTime.data
    )
    db.session.commit()

    logger.info('Trainer %s marked %s on %s', trainer.id, record.status, record.date)
    return jsonify(record.to_dict())


@trainers_bp.route('/attendance/bulk', methods=['POST'])
@gym_owner_required
def bulk_attendance():
    """Mark several trainers present for one day"""
    form = BulkAttendanceForm.from_json().validate_or_raise()
    gym_id = current_gym_id()

    trainers = Trainer.query.filter(
        Trainer.gym_id == gym_id,
        Trainer.id.in_(form.trainer_id_list())
    ).all()

    for trainer in trainers:
        TrainerAttendance.upsert(trainer.id, form.date.data, AttendanceStatus.PRESENT)
    db.session.commit()

    logger.info('Gym %s marked %s trainers present on %s', gym_id, len(trainers), form.date.data)
    return jsonify({'ok': True, 'count': len(trainers)})


@trainers_bp.route('/stats')
@gym_owner_required
def stats():
    """Today's attendance across all trainers"""
    trainer_ids = [tid for (tid,) in db.session.query(Trainer.id).filter(
        Trainer.gym_id == current_gym_id()
    ).all()]

    counts = {status: 0 for status in AttendanceStatus.ALL}
    for status in today_statuses(trainer_ids, date.today()).values():
        counts[status] += 1

    present = counts[AttendanceStatus.PRESENT]
    late = counts[AttendanceStatus.LATE]

    return jsonify({
        'totalTrainers': len(trainer_ids),
        'presentToday': present,
        'absentToday': counts[AttendanceStatus.ABSENT],
        'lateToday': late,
        'attendancePercent': attendance_percent(present, late, len(trainer_ids)),
    })
