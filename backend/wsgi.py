# backend/wsgi.py
# FLASK_APP=wsgi.py for `flask <group> <command>`; gunicorn wsgi:app to serve.
from umipos import create_app
from umipos.services.session_cleanup import start_session_cleanup

app = create_app()
start_session_cleanup(app)
