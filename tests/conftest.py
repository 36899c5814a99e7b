import itertools
from datetime import date

import pytest
from flask_jwt_extended import create_access_token

from mediqueue import create_app
from mediqueue.extensions import db
from mediqueue.models import Staff, Doctor, Patient, Visit
from mediqueue.services.data_access import initialize_database
from mediqueue.services.notifications import NotificationChannel
from mediqueue.services.queue_service import next_stn


class FakeTimer:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Drop-in for TimerScheduler; time only moves when advance() is called."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def schedule(self, delay_seconds, callback):
        timer = FakeTimer(self.now + delay_seconds, callback)
        self.timers.append(timer)
        return timer

    def pending(self):
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds):
        self.now += seconds
        due = [t for t in self.timers if not t.cancelled and t.due <= self.now]
        self.timers = [t for t in self.timers if t not in due]
        for timer in due:
            timer.callback()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def app(scheduler):
    app = create_app('testing')
    app.extensions['notifications'] = NotificationChannel(scheduler=scheduler)

    with app.app_context():
        db.create_all()
        initialize_database()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def channel(app):
    return app.extensions['notifications']


def _make_staff(username, role, doctor=None):
    staff = Staff(
        username=username,
        email=f'{username}@test.local',
        first_name=username.title(),
        last_name='Test',
        role=role,
        is_active=True,
        doctor_id=doctor.id if doctor else None,
    )
    staff.set_password('password123')
    db.session.add(staff)
    db.session.commit()
    return staff


def _headers(staff):
    token = create_access_token(identity=str(staff.id))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin(app):
    return _make_staff('admin', 'admin')


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture
def receptionist_headers(app):
    return _headers(_make_staff('reception', 'receptionist'))


@pytest.fixture
def doctor(app):
    doctor = Doctor(name='Dr. Ravi Kumar', specialization='general', qualification='MBBS',
                    experience_years=8, consultation_fee=500, status='active')
    db.session.add(doctor)
    db.session.commit()
    return doctor


@pytest.fixture
def doctor_headers(doctor):
    return _headers(_make_staff('doctor', 'doctor', doctor=doctor))


@pytest.fixture
def make_patient(app):
    counter = itertools.count(1)

    def _make(name='Test Patient', phone=None, uid=None, **kwargs):
        n = next(counter)
        patient = Patient(
            id=uid or f'CLN1-TEST{n:04d}',
            name=name,
            phone=phone or f'98765{n:05d}',
            **kwargs
        )
        db.session.add(patient)
        db.session.commit()
        return patient

    return _make


@pytest.fixture
def make_visit(app, make_patient):
    def _make(patient=None, department='general', status='waiting',
              payment_status='pay_at_clinic', visit_date=None, stn=None):
        patient = patient or make_patient()
        visit_date = visit_date or date.today()
        visit = Visit(
            patient_id=patient.id,
            stn=stn if stn is not None else next_stn(department, visit_date),
            department=department,
            visit_date=visit_date,
            status=status,
            payment_status=payment_status,
        )
        db.session.add(visit)
        db.session.commit()
        return visit

    return _make
