#!/usr/bin/env python3
"""
Initialize default staff accounts for the clinic.
Run with: python3 init_staff.py
"""
from mediqueue import create_app
from mediqueue.extensions import db
from mediqueue.models import Staff, Doctor
from mediqueue.services.data_access import initialize_database

# Default staff accounts to create
DEFAULT_STAFF = [
    {
        'username': 'admin',
        'email': 'admin@mediqueue.local',
        'password': 'admin123',
        'first_name': 'Clinic',
        'last_name': 'Admin',
        'role': 'admin',
        'phone': ''
    },
    {
        'username': 'reception1',
        'email': 'reception1@mediqueue.local',
        'password': 'recep123',
        'first_name': 'Meera',
        'last_name': 'Reception',
        'role': 'receptionist',
        'phone': ''
    },
    {
        'username': 'doctor1',
        'email': 'doctor1@mediqueue.local',
        'password': 'doctor123',
        'first_name': 'Ravi',
        'last_name': 'Kumar',
        'role': 'doctor',
        'phone': '',
        'doctor': {
            'name': 'Dr. Ravi Kumar',
            'specialization': 'general',
            'qualification': 'MBBS',
            'experience_years': 8,
            'consultation_fee': 500,
        }
    },
]


def create_staff():
    """Create default staff accounts"""
    app = create_app()
    if not app.config['DATA_SERVICE_CONFIGURED']:
        print("❌ DATABASE_URL and SECRET_KEY must be set in .env first")
        return

    with app.app_context():
        print("=" * 60)
        print("Initializing Staff Accounts")
        print("=" * 60)
        print()

        db.create_all()
        initialize_database()

        created_count = 0

        for staff_data in DEFAULT_STAFF:
            username = staff_data['username']

            # Check if account already exists
            existing = Staff.query.filter_by(username=username).first()
            if existing:
                print(f"  - Staff '{username}' already exists (skipping)")
                continue

            staff = Staff(
                username=username,
                email=staff_data['email'],
                first_name=staff_data['first_name'],
                last_name=staff_data['last_name'],
                role=staff_data['role'],
                phone=staff_data.get('phone', ''),
                is_active=True
            )
            staff.set_password(staff_data['password'])

            if staff_data.get('doctor'):
                doctor = Doctor(status='active', **staff_data['doctor'])
                db.session.add(doctor)
                db.session.flush()
                staff.doctor_id = doctor.id

            db.session.add(staff)
            created_count += 1
            print(f"  ✓ Created: {username} ({staff_data['role']}) - Password: {staff_data['password']}")

        db.session.commit()

        print()
        print("=" * 60)
        print(f"✅ Created {created_count} new staff account(s)")
        print("=" * 60)
        print("\n⚠️  IMPORTANT: Change passwords after first login!")
        print("\nAvailable Roles:")
        print("  - admin")
        print("  - receptionist")
        print("  - doctor")


if __name__ == '__main__':
    create_staff()
