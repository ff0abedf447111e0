# practice_analytics_root/tests/conftest.py
# PYTEST FIXTURES

import sys
from pathlib import Path

# --- Path Setup for Module Imports ---
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from datetime import date, datetime

import pytest

from data_processing import DateRange

# --- Reference Time ---

@pytest.fixture(scope="session")
def fixed_now() -> datetime:
    """A fixed evaluation instant so every date-relative assertion is stable."""
    return datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture(scope="session")
def june_range() -> DateRange:
    """June 1 through June 15, 2024 (15 days)."""
    return DateRange(start=date(2024, 6, 1), end=date(2024, 6, 15))


# --- Practice Record Fixtures ---

@pytest.fixture(scope="session")
def patient_records() -> list:
    return [
        {'_id': 'p1', 'age': 17, 'gender': 'Female', 'registrationDate': '2024-06-02'},
        {'_id': 'p2', 'age': 18, 'gender': 'Male', 'createdAt': '2024-06-10T09:30:00Z'},
        {'_id': 'p3', 'age': 64, 'gender': 'Female', 'registrationDate': '2024-03-01'},
        {'_id': 'p4', 'age': 65, 'gender': None, 'registrationDate': 'not a date'},
        {'_id': 'p5', 'gender': 'Male', 'registrationDate': '2024-06-15'},
    ]


@pytest.fixture(scope="session")
def appointment_records() -> list:
    return [
        {'_id': 'a1', 'date': '2024-06-01', 'type': 'Checkup', 'status': 'completed'},
        {'_id': 'a2', 'date': '2024-06-01T15:00:00', 'appointmentType': 'Follow-up', 'status': 'scheduled'},
        {'_id': 'a3', 'date': '2024-06-03', 'status': 'completed'},
        {'_id': 'a4', 'date': '2024-06-15', 'type': 'Checkup', 'status': 'cancelled'},
        {'_id': 'a5', 'date': '2024-05-31', 'type': 'Checkup', 'status': 'completed'},
        {'_id': 'a6', 'type': 'Checkup', 'status': 'completed'},
    ]


@pytest.fixture(scope="session")
def payment_records() -> list:
    return [
        {'_id': 'pay1', 'amount': 100, 'status': 'Paid', 'description': 'Consultation', 'date': '2024-06-02'},
        {'_id': 'pay2', 'amount': 50, 'status': 'pending', 'description': 'Consultation', 'date': '2024-06-03'},
        {'_id': 'pay3', 'amount': 200, 'status': 'Completed', 'paymentMethod': 'card', 'createdAt': '2024-06-10'},
    ]


@pytest.fixture(scope="session")
def prescription_records() -> list:
    return [
        {'_id': 'rx1', 'date': '2024-06-05', 'medications': [{'name': 'Amoxicillin'}, {'medication': 'Ibuprofen'}]},
        {'_id': 'rx2', 'createdAt': '2024-06-06', 'medications': ['Amoxicillin', None, '']},
        {'_id': 'rx3', 'date': '2024-04-01', 'medication': {'medicationName': 'Metformin'}},
        {'_id': 'rx4', 'date': '2024-06-07', 'medicationName': 'Ibuprofen'},
        {'_id': 'rx5', 'medications': [{'dose': '5mg'}]},
    ]


# --- Subscription Record Fixtures ---

@pytest.fixture(scope="session")
def subscription_records() -> list:
    return [
        {'_id': 's1', 'organization': 'o1', 'status': 'active', 'amount': 100, 'endDate': '2024-12-31',
         'lastPaymentDate': '2024-06-01', 'trialEndDate': '2024-01-01', 'plan': {'name': 'Professional Monthly'}},
        {'_id': 's2', 'organization': 'o2', 'status': 'trialing', 'amount': 50, 'trialEndDate': '2024-06-20T12:00:00',
         'plan': {'name': 'Basic'}},
        {'_id': 's3', 'organization': 'o3', 'status': 'cancelled', 'amount': 300, 'endDate': '2024-05-01',
         'plan': {'name': 'Enterprise'}},
        {'_id': 's4', 'organization': 'o4', 'status': 'active', 'amount': 80, 'endDate': '2024-06-18T12:00:00',
         'lastPaymentDate': '2024-05-18', 'plan': {'name': 'basic annual'}},
        {'_id': 's5', 'organization': 'o5', 'status': 'active', 'amount': 40, 'endDate': '2024-06-01',
         'lastPaymentDate': '2024-05-01'},
    ]


@pytest.fixture(scope="session")
def organization_records() -> list:
    return [
        {'_id': 'o1', 'isActive': True, 'createdAt': '2024-06-05', 'subscription': 's1'},
        {'_id': 'o2', 'isActive': True, 'createdAt': '2024-06-10'},
        {'_id': 'o3', 'isActive': True, 'createdAt': '2024-01-10', 'subscription': 's3'},
        {'_id': 'o4', 'isActive': True, 'createdAt': '2023-11-01', 'subscription': 's4'},
        {'_id': 'o5', 'isActive': False, 'createdAt': '2023-10-01', 'subscription': 's5'},
        {'_id': 'o6', 'isActive': True, 'subscriptionType': 'unlimited', 'createdAt': '2023-09-01'},
    ]
