from typing import Any, Dict, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction

from journeys.exceptions import InvalidInput
from journeys.models import Department, Hospital
from journeys.services.departments import format_department

VERSION_KEY = 'hospitals:version'


def _cache_version() -> int:
    return cache.get(VERSION_KEY) or 1


def invalidate_hospital_cache() -> None:
    cache.set(VERSION_KEY, _cache_version() + 1, None)


def format_hospital(h: Hospital, departments=None) -> Dict[str, Any]:
    data = {
        'id': h.id,
        'name': h.name,
        'code': h.code,
        'address': h.address,
        'city': h.city,
        'phone': h.phone,
        'type': h.type,
        'openTime': h.open_time,
        'closeTime': h.close_time,
        'hasEmergency': h.has_emergency,
        'hasPharmacy': h.has_pharmacy,
        'hasLab': h.has_lab,
    }
    if departments is not None:
        data['departments'] = [format_department(d) for d in departments]
    return data


def list_hospitals(city: Optional[str] = None, with_departments: bool = False):
    """Hospitals by name, optionally with their open departments; cached."""
    ck = f"hospitals:v{_cache_version()}:city={(city or '').lower()}:depts={int(with_departments)}"
    cached = cache.get(ck)
    if cached is not None:
        return cached
    qs = Hospital.objects.all().order_by('name')
    if city:
        qs = qs.filter(city__icontains=city)
    data = []
    for h in qs:
        departments = None
        if with_departments:
            departments = h.departments.filter(is_open=True).order_by('type', 'name')
        data.append(format_hospital(h, departments))
    cache.set(ck, data, settings.HOSPITAL_CACHE_SECONDS)
    return data


def create_hospital(data: Dict[str, Any]) -> Hospital:
    """Create a hospital and its departments from validated input."""
    departments = data.get('departments') or []
    try:
        with transaction.atomic():
            hospital = Hospital.objects.create(
                name=data['name'],
                code=data['code'],
                address=data.get('address') or '',
                city=data.get('city') or '',
                phone=data.get('phone') or '',
                type=data.get('type') or 'government',
                open_time=data.get('open_time') or '08:00',
                close_time=data.get('close_time') or '20:00',
                has_emergency=data.get('has_emergency', True),
                has_pharmacy=data.get('has_pharmacy', True),
                has_lab=data.get('has_lab', True),
            )
            Department.objects.bulk_create([
                Department(
                    hospital=hospital,
                    name=d['name'],
                    code=d.get('code') or '',
                    type=d.get('type') or 'other',
                    floor=d.get('floor') or 0,
                    wing=d.get('wing') or None,
                    avg_service_time=d.get('avg_service_time') or 15,
                    max_capacity=d.get('max_capacity') or 50,
                )
                for d in departments
            ])
    except IntegrityError:
        raise InvalidInput('Hospital code already exists') from None
    invalidate_hospital_cache()
    return hospital
