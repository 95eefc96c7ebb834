import pytest
from django.core.cache import cache

from journeys.models import Department, Hospital, PatientProfile, User


@pytest.fixture(autouse=True)
def _clear_cache():
    # Throttle counters and hospital listings live in the cache.
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def hospital(db):
    return Hospital.objects.create(name='General Hospital', code='GH01', city='Pune')


@pytest.fixture
def departments(hospital):
    return [
        Department.objects.create(hospital=hospital, name='Registration', type='registration', avg_service_time=10),
        Department.objects.create(hospital=hospital, name='Consultation', type='consultation', avg_service_time=20),
        Department.objects.create(hospital=hospital, name='Pharmacy', type='pharmacy', avg_service_time=10),
    ]


@pytest.fixture
def patient(db):
    user = User.objects.create_user(username='patient1', password='P@ssw0rd1', role='patient')
    return PatientProfile.objects.create(user=user, full_name='Asha Rao', phone='9800000001')


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(username='nurse1', password='P@ssw0rd1', role='staff')
