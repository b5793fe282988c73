# backend/wsgi.py
from buildmart import create_app

app = create_app()
