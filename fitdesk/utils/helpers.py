import calendar
import os
import re
import uuid
from datetime import datetime, date, timedelta
from decimal import Decimal
from flask import current_app

from fitdesk.utils.errors import ValidationError

EXCEL_EPOCH = date(1899, 12, 30)


def allowed_file(filename):
    """Check if file extension is allowed"""
    if '.' not in filename:
        return False
    ext = filename.rsplit('.', 1)[1].lower()
    return ext in current_app.config.get('ALLOWED_EXTENSIONS', {'png', 'jpg', 'jpeg', 'gif', 'webp'})


def file_size(file):
    """Size in bytes of an uploaded FileStorage"""
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def validate_image(file, max_size, max_label):
    """
    Reject missing, empty, non-image or oversized uploads

    Args:
        file: FileStorage or None
        max_size: limit in bytes
        max_label: limit as shown to the user, e.g. '5MB'
    """
    if file is None or not file.filename:
        raise ValidationError('No file uploaded')

    size = file_size(file)
    if not size:
        raise ValidationError('File is empty')

    mimetype = (file.mimetype or '').lower()
    if (mimetype and not mimetype.startswith('image/')) or not allowed_file(file.filename):
        raise ValidationError('Invalid file type. Use JPEG, PNG, GIF, or WebP.')

    if size > max_size:
        raise ValidationError(f'File too large. Maximum {max_label}.')


def save_uploaded_file(file, folder='uploads'):
    """
    Save uploaded file with unique name

    Args:
        file: FileStorage object
        folder: subfolder name (clients, logos)

    Returns:
        Relative path to saved file or None
    """
    if not file or file.filename == '':
        return None

    if not allowed_file(file.filename):
        return None

    # Generate unique filename
    ext = file.filename.rsplit('.', 1)[1].lower()
    filename = f"{uuid.uuid4().hex}.{ext}"

    # Full path
    upload_folder = os.path.join(current_app.config['UPLOAD_FOLDER'], folder)
    os.makedirs(upload_folder, exist_ok=True)

    filepath = os.path.join(upload_folder, filename)
    file.save(filepath)

    # Return relative path for storage
    return f"uploads/{folder}/{filename}"


def delete_uploaded_file(filepath):
    """Delete uploaded file"""
    if not filepath or not filepath.startswith('uploads/'):
        return

    relative = filepath[len('uploads/'):]
    full_path = os.path.join(current_app.config['UPLOAD_FOLDER'], *relative.split('/'))
    if os.path.exists(full_path):
        os.remove(full_path)


def upload_url(filepath):
    """Public URL for a stored upload path"""
    if not filepath:
        return None
    if filepath.startswith(('/', 'http://', 'https://')):
        return filepath
    return f'/static/{filepath}'


def to_float(value):
    """Numeric column value as float"""
    if value is None:
        return 0.0
    if isinstance(value, Decimal):
        return float(value)
    return float(value)


def format_date(d, format='%Y-%m-%d'):
    """Format date, None stays None"""
    if not d:
        return None
    if isinstance(d, str):
        return d
    return d.strftime(format)


def format_datetime(dt):
    """ISO timestamp, None stays None"""
    if not dt:
        return None
    return dt.isoformat()


def parse_date_param(value):
    """Parse a YYYY-MM-DD query parameter, None when absent or invalid"""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip()[:10], '%Y-%m-%d').date()
    except ValueError:
        return None


def day_bounds(start=None, end=None):
    """
    Datetime bounds covering whole days.

    Returns (start_dt, end_dt) where end_dt is exclusive midnight after
    the end day, so the end day itself is included. The last representable
    day has no upper bound.
    """
    start_dt = datetime.combine(start, datetime.min.time()) if start else None
    end_dt = None
    if end and end < date.max:
        end_dt = datetime.combine(end + timedelta(days=1), datetime.min.time())
    return start_dt, end_dt


def month_start(d):
    return date(d.year, d.month, 1)


def month_end(d):
    return date(d.year, d.month, calendar.monthrange(d.year, d.month)[1])


def add_months(d, months):
    """Shift a date by whole months, clamping the day"""
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def last_months(count, today=None):
    """First days of the last `count` months, oldest first, ending with the current month"""
    today = today or date.today()
    current = month_start(today)
    return [add_months(current, -offset) for offset in range(count - 1, -1, -1)]


def parse_flexible_date(value):
    """
    Parse a date from spreadsheet input.

    Accepts ISO dates and timestamps, M/D/Y and D/M/Y with / or -
    separators (two-digit years below 50 are 20xx), and Excel serial
    day numbers. Returns a date or None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    s = str(value).strip()
    if not s:
        return None

    try:
        return datetime.fromisoformat(s.replace('Z', '+00:00')).date()
    except ValueError:
        pass

    parts = re.split(r'[/-]', s)
    if len(parts) == 3:
        try:
            n1, n2, n3 = (int(p) for p in parts)
        except ValueError:
            return None

        if n1 >= 1000:
            year, month, day = n1, n2, n3
        elif 1 <= n1 <= 12 and 1 <= n2 <= 31:
            month, day, year = n1, n2, n3
        elif 1 <= n2 <= 12 and 1 <= n1 <= 31:
            day, month, year = n1, n2, n3
        else:
            return None

        if year < 100:
            year += 2000 if year < 50 else 1900
        try:
            return date(year, month, day)
        except ValueError:
            return None

    match = re.match(r'^\d+', s)
    if match:
        serial = int(match.group())
        if serial > 0:
            try:
                return EXCEL_EPOCH + timedelta(days=serial)
            except OverflowError:
                return None

    return None


def pagination_args(request, default_per_page=None, max_per_page=None):
    """Get pagination arguments from request (page, limit)"""
    default_per_page = default_per_page or current_app.config.get('ITEMS_PER_PAGE', 10)
    max_per_page = max_per_page or current_app.config.get('MAX_ITEMS_PER_PAGE', 50)

    page = request.args.get('page', 1, type=int) or 1
    per_page = request.args.get('limit', default_per_page, type=int) or default_per_page
    return max(1, page), max(1, min(per_page, max_per_page))
