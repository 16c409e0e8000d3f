# backend/wsgi.py
from fuelstation import create_app

app = create_app()
