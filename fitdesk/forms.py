"""
WTForms for FitDesk.

API handlers receive JSON; json_formdata() turns the body into form data
so every operation validates through an explicit form. A JSON null is
sent as an empty value, so the field counts as provided and is cleared.
"""

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import (
    Field, StringField, PasswordField, BooleanField, SelectField,
    TextAreaField, IntegerField, DecimalField, DateField, DateTimeField
)
from wtforms.validators import (
    DataRequired, InputRequired, Email, Optional, Length, NumberRange,
    StopValidation, ValidationError as FieldValidationError
)

from fitdesk.models.client import SubscriptionStatus
from fitdesk.models.trainer import Shift, SalaryType
from fitdesk.models.attendance import AttendanceStatus
from fitdesk.utils.errors import ValidationError

DATE_FORMATS = ['%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M:%S.%fZ', '%Y-%m-%dT%H:%M:%SZ']
DATETIME_FORMATS = ['%Y-%m-%dT%H:%M:%S.%fZ', '%Y-%m-%dT%H:%M:%SZ', '%Y-%m-%dT%H:%M:%S',
                    '%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M:%S', '%Y-%m-%d']

MAX_DURATION_DAYS = 36500


def _form_value(value):
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return None
    return str(value)


def json_formdata(payload=None, required=True):
    """
    Convert a JSON object body into a MultiDict for WTForms

    Lists become repeated keys. Nested objects are ignored.
    """
    if payload is None:
        payload = request.get_json(silent=True)
    if payload is None and not required:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError('Invalid JSON body')

    data = MultiDict()
    for key, value in payload.items():
        if isinstance(value, (list, tuple)):
            for item in value:
                item_value = _form_value(item)
                if item_value is not None:
                    data.add(key, item_value)
            continue
        form_value = _form_value(value)
        if form_value is not None:
            data.add(key, form_value)
    return data


class ListField(Field):
    """Field holding every submitted value for its key"""

    def _value(self):
        return ','.join(self.data or [])

    def process_formdata(self, valuelist):
        self.data = [v for v in valuelist]


def finite(form, field):
    if field.data is not None and not field.data.is_finite():
        raise StopValidation('Must be a finite number')


def positive(form, field):
    if field.data is not None and field.data <= 0:
        raise FieldValidationError('Must be greater than 0')


def not_blank(form, field):
    """A sent value may not be blank, a missing one is fine"""
    if field.raw_data and not (field.raw_data[0] or '').strip():
        raise StopValidation(f'{field.label.text} cannot be empty')


class APIForm(FlaskForm):
    """Base form for JSON endpoints"""

    class Meta:
        csrf = False

    # Field name -> message reported instead of the field's own error
    error_messages = {}

    @classmethod
    def from_json(cls, payload=None, required=True, **kwargs):
        return cls(formdata=json_formdata(payload, required=required), **kwargs)

    def provided(self, name):
        """Whether the request carried this field (a null counts)"""
        return bool(self[name].raw_data)

    def provided_fields(self):
        return [name for name in self._fields if self.provided(name)]

    def first_error(self):
        for name, field in self._fields.items():
            if field.errors:
                return self.error_messages.get(name) or f'{field.label.text}: {field.errors[0]}'
        return 'Invalid request'

    def validate_or_raise(self):
        if not self.validate():
            raise ValidationError(self.first_error())
        return self


def clean(value):
    """Strip text input, empty text becomes None"""
    if value is None:
        return None
    value = value.strip()
    return value or None


# ============= Auth =============

class LoginForm(FlaskForm):
    """Login form"""
    email = StringField('Email', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


class LoginAPIForm(APIForm):
    email = StringField('Email', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])

    error_messages = {
        'email': 'Email and password are required',
        'password': 'Email and password are required',
    }


# ============= Super admin =============

class GymOwnerForm(APIForm):
    """New gym owner with their gym"""
    name = StringField('Owner name', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[InputRequired(), Length(min=6)])
    gymName = StringField('Gym name', validators=[DataRequired(), Length(max=150)])
    phone = StringField('Phone', validators=[Optional(), Length(max=20)])
    subscriptionPlanId = IntegerField('Subscription plan', validators=[Optional()])
    durationDays = IntegerField('Duration', validators=[Optional(), NumberRange(min=1, max=MAX_DURATION_DAYS)])

    error_messages = {
        'name': 'Owner name and email are required',
        'password': 'Password is required (min 6 characters)',
        'gymName': 'Gym name is required',
        'durationDays': 'Duration must be a positive number of days',
    }


class GymUpdateForm(APIForm):
    """Partial gym update, only sent fields are applied"""
    isActive = BooleanField('Active')
    subscriptionPlanId = IntegerField('Subscription plan', validators=[Optional()])
    subscriptionStartDate = DateField('Start date', format=DATE_FORMATS, validators=[Optional()])
    subscriptionEndDate = DateField('End date', format=DATE_FORMATS, validators=[Optional()])
    name = StringField('Gym name', validators=[Optional(), Length(max=150)])
    ownerName = StringField('Owner name', validators=[Optional(), Length(max=100)])
    ownerEmail = StringField('Owner email', validators=[Optional(), Email()])
    ownerPhone = StringField('Owner phone', validators=[Optional(), Length(max=20)])


class ProfileForm(APIForm):
    name = StringField('Name', validators=[Length(max=100)])
    email = StringField('Email', validators=[Optional(), Email()])
    currentPassword = PasswordField('Current password')
    newPassword = PasswordField('New password', validators=[Optional(), Length(min=6)])

    error_messages = {
        'newPassword': 'New password must be at least 6 characters',
    }


class PlanForm(APIForm):
    """Subscription plan form"""
    name = StringField('Plan name', validators=[DataRequired(), Length(max=100)])
    price = DecimalField('Price', validators=[InputRequired(), finite, NumberRange(min=0)])
    durationInDays = IntegerField('Duration', validators=[InputRequired(), NumberRange(min=1)])
    features = ListField('Features')

    error_messages = {
        'name': 'Plan name is required',
        'price': 'Valid price is required',
        'durationInDays': 'Duration must be a positive number of days',
    }

    def feature_list(self):
        """Features from a list, or from one newline separated string"""
        values = self.features.data or []
        if len(values) == 1 and '\n' in values[0]:
            values = values[0].split('\n')
        return [v.strip() for v in values if v and v.strip()]


# ============= Clients =============

STATUS_CHOICES = [(s, s.title()) for s in SubscriptionStatus.ALL]


class ClientForm(APIForm):
    """Client fields, all optional for partial updates"""
    fullName = StringField('Full name', validators=[not_blank, Optional(), Length(max=150)])
    phone = StringField('Phone', validators=[Optional(), Length(max=30)])
    email = StringField('Email', validators=[Optional(), Email()])
    address = TextAreaField('Address', validators=[Optional()])
    dateOfBirth = DateField('Date of birth', format=DATE_FORMATS, validators=[Optional()])
    joinDate = DateField('Join date', format=DATE_FORMATS, validators=[Optional()])
    subscriptionStartDate = DateField('Subscription start', format=DATE_FORMATS, validators=[Optional()])
    subscriptionEndDate = DateField('Subscription end', format=DATE_FORMATS, validators=[Optional()])
    subscriptionStatus = SelectField('Status', choices=STATUS_CHOICES, validators=[Optional()])
    totalAmount = DecimalField('Total amount', validators=[Optional(), finite, NumberRange(min=0)])
    amountPaid = DecimalField('Amount paid', validators=[Optional(), finite, NumberRange(min=0)])

    error_messages = {
        'fullName': 'Full name cannot be empty',
    }


class ClientCreateForm(ClientForm):
    fullName = StringField('Full name', validators=[DataRequired(), Length(max=150)])

    error_messages = {
        'fullName': 'Full name is required',
    }


class ReminderForm(APIForm):
    channel = SelectField('Channel', choices=[('sms', 'SMS'), ('whatsapp', 'WhatsApp')],
                          validators=[Optional()])


# ============= Payments =============

class PaymentForm(APIForm):
    """Payment form"""
    clientId = IntegerField('Client', validators=[InputRequired()])
    amount = DecimalField('Amount', validators=[InputRequired(), finite, positive])
    paymentMethod = StringField('Payment method', validators=[Optional(), Length(max=50)])
    paymentDate = DateTimeField('Payment date', format=DATETIME_FORMATS, validators=[Optional()])

    error_messages = {
        'clientId': 'Valid clientId and amount required',
        'amount': 'Valid clientId and amount required',
    }


# ============= Gym settings =============

class GymSettingsForm(APIForm):
    """Invoice settings, only sent fields are applied"""
    invoiceAddress = TextAreaField('Invoice address', validators=[Optional()])
    invoicePhone = StringField('Invoice phone', validators=[Optional(), Length(max=30)])
    invoiceEmail = StringField('Invoice email', validators=[Optional(), Email()])
    gstNumber = StringField('GST number', validators=[Optional(), Length(max=30)])


# ============= Trainers =============

class TrainerForm(APIForm):
    """Trainer fields, all optional for partial updates"""
    fullName = StringField('Full name', validators=[not_blank, Optional(), Length(max=150)])
    phone = StringField('Phone', validators=[Optional(), Length(max=30)])
    email = StringField('Email', validators=[Optional(), Email()])
    specialization = StringField('Specialization', validators=[Optional(), Length(max=100)])
    shift = SelectField('Shift', choices=[(s, s.title()) for s in Shift.ALL], validators=[Optional()])
    shiftCustom = StringField('Custom shift', validators=[Optional(), Length(max=100)])
    weeklyOff = ListField('Weekly off')
    salaryType = SelectField('Salary type', choices=[(s, s.title()) for s in SalaryType.ALL],
                             validators=[Optional()])
    joiningDate = DateField('Joining date', format=DATE_FORMATS, validators=[Optional()])
    profilePhoto = StringField('Profile photo', validators=[Optional(), Length(max=255)])

    error_messages = {
        'fullName': 'Full name cannot be empty',
    }


class TrainerCreateForm(TrainerForm):
    fullName = StringField('Full name', validators=[DataRequired(), Length(max=150)])

    error_messages = {
        'fullName': 'Full name is required',
    }


class AttendanceForm(APIForm):
    """Mark a trainer for one day"""
    date = DateField('Date', format=DATE_FORMATS, validators=[DataRequired()])
    status = SelectField('Status', choices=[(s, s.title()) for s in AttendanceStatus.ALL],
                         validators=[Optional()])
    present = BooleanField('Present')
    checkInTime = DateTimeField('Check in', format=DATETIME_FORMATS, validators=[Optional()])
    checkOutTime = DateTimeField('Check out', format=DATETIME_FORMATS, validators=[Optional()])

    error_messages = {
        'date': 'Date is required',
    }

    def resolved_status(self):
        if self.status.data:
            return self.status.data
        if self.provided('present') and not self.present.data:
            return AttendanceStatus.ABSENT
        return AttendanceStatus.PRESENT


class BulkAttendanceForm(APIForm):
    date = DateField('Date', format=DATE_FORMATS, validators=[DataRequired()])
    trainerIds = ListField('Trainers')

    error_messages = {
        'date': 'Date and trainerIds required',
        'trainerIds': 'Date and trainerIds required',
    }

    def validate_trainerIds(self, field):
        if not field.data:
            raise FieldValidationError('Date and trainerIds required')

    def trainer_id_list(self):
        ids = []
        for value in self.trainerIds.data or []:
            try:
                ids.append(int(value))
            except (TypeError, ValueError):
                continue
        return ids
