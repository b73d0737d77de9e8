#!/usr/bin/env python3
"""WSGI entry point for production deployment.

  gunicorn wsgi:application
  waitress-serve --port=8080 wsgi:application
"""

from web.flask_app import create_app

application = create_app()

if __name__ == "__main__":
    # For development only
    application.run()
