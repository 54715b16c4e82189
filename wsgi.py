"""WSGI entry point for gunicorn (``gunicorn -c gunicorn.conf.py wsgi:app``)."""
import os

from mika import create_app

app = create_app(os.environ.get("FLASK_ENV", "production"))

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")))
