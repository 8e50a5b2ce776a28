# WSGI entry point for production servers (gunicorn wsgi:application)
import os

basedir = os.path.abspath(os.path.dirname(__file__))

os.environ.setdefault('FLASK_ENV', 'production')

# Default to a SQLite file in instance/ when no DATABASE_URL is given
instance_dir = os.path.join(basedir, 'instance')
os.makedirs(instance_dir, exist_ok=True)
os.environ.setdefault('DATABASE_URL', f"sqlite:///{os.path.join(instance_dir, 'fitdesk.db')}")

from fitdesk import create_app  # noqa: E402

app = create_app(os.environ['FLASK_ENV'])
application = app
