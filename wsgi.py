#!/usr/bin/env python3
"""
WSGI entry point for Canteen Admin
"""

import os

from app import create_app
from config import config

application = create_app(config[os.environ.get('FLASK_ENV', 'production')])

if __name__ == "__main__":
    application.run()
