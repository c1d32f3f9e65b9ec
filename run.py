#!/usr/bin/env python3
"""
Canteen Admin - Main Application Runner
"""

import os
from app import create_app, db
from app.models import Operator
from config import config


def create_default_data():
    """Create the first admin operator"""
    if Operator.query.filter_by(role='ADMIN').count() == 0:
        email = os.environ.get('ADMIN_EMAIL', 'admin@canteen.ph')
        admin = Operator(
            email=email,
            full_name='Canteen Administrator',
            role='ADMIN'
        )
        admin.set_password(os.environ.get('ADMIN_PASSWORD', 'admin123'))  # Change in production!

        db.session.add(admin)
        db.session.commit()
        print(f"Created default admin operator ({email})")


def main():
    """Main application entry point"""
    app = create_app(config[os.environ.get('FLASK_ENV', 'default')])

    with app.app_context():
        db.create_all()
        create_default_data()

    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'

    print(f"Starting Canteen Admin on port {port}")
    print(f"Canteen backend: {app.config['CANTEEN_API_URL']}")

    # The reloader would start a second scheduler
    app.run(host='0.0.0.0', port=port, debug=debug, use_reloader=False)


if __name__ == '__main__':
    main()
