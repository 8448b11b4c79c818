"""Demo dataset for the mock backend.

Two master franchises (mf_1, mf_2) with one learning center each
(lc_1 under mf_1, lc_2 under mf_2), programs in every visibility mode and
a handful of org-owned records so each role sees a different slice.

Payloads are validated like API input, but seeding is a system action and
does not pass through the mutation gate.
"""
import logging

from eduadmin.services.entity_registry import ENTITY_DEFINITIONS
from eduadmin.services.repository import EntityStore

logger = logging.getLogger(__name__)


def _create(store: EntityStore, entity_type: str, payload: dict) -> dict:
    definition = ENTITY_DEFINITIONS[entity_type]
    return store.for_entity(entity_type).create(definition.clean(payload))


DEMO_PROGRAMS = [
    {"name": "Mental Arithmetic", "description": "Abacus-based arithmetic for ages 6-12",
     "category": "math", "kind": "program", "status": "active", "price": 300, "duration": 12,
     "visibility": "public", "sharedWithMFs": [], "sharedWithLCs": []},
    {"name": "Speed Reading", "description": "Reading fluency and comprehension",
     "category": "language", "kind": "program", "status": "active", "price": 250, "duration": 10,
     "visibility": "shared", "sharedWithMFs": ["mf_1"], "sharedWithLCs": ["lc_1"]},
    {"name": "Robotics Pilot", "description": "Internal pilot, not yet released",
     "category": "stem", "kind": "course", "status": "draft", "price": 400, "duration": 8,
     "visibility": "private", "sharedWithMFs": [], "sharedWithLCs": []},
]


def seed_demo_data(store: EntityStore, *, reset: bool = True) -> dict[str, int]:
    """Load the demo dataset; returns record counts per entity type."""
    if reset:
        store.clear()

    created = [_create(store, "programs", p) for p in DEMO_PROGRAMS]
    public, shared, _private = created

    level_1 = _create(store, "subprograms", {
        "programId": public["id"], "name": "Level 1", "description": "Foundations",
        "status": "active", "order": 1, "pricingModel": "per_month", "coursePrice": 300,
        "pricePerMonth": 100, "visibility": "public", "sharedWithMFs": [], "sharedWithLCs": [],
    })
    _create(store, "subprograms", {
        "programId": shared["id"], "name": "Reading Basics", "description": "First module",
        "status": "active", "order": 1, "pricingModel": "per_course", "coursePrice": 250,
        "visibility": "shared", "sharedWithMFs": ["mf_1"], "sharedWithLCs": ["lc_1"],
    })

    anna = _create(store, "teachers", {
        "firstName": "Anna", "lastName": "Novak", "email": "anna@lc1.example",
        "gender": "female", "status": "active", "mfId": "mf_1", "lcId": "lc_1",
    })
    _create(store, "teachers", {
        "firstName": "Marco", "lastName": "Rossi", "email": "marco@lc2.example",
        "gender": "male", "status": "process", "mfId": "mf_2", "lcId": "lc_2",
    })

    group = _create(store, "learning-groups", {
        "name": "Arithmetic Mon/Wed", "description": "Beginners", "location": "Room 1",
        "status": "active", "maxStudents": 12, "programId": public["id"],
        "subProgramId": level_1["id"], "teacherId": anna["id"], "mfId": "mf_1", "lcId": "lc_1",
        "startDate": "2025-09-01", "endDate": "2026-06-30",
        "pricingSnapshot": {
            "programPrice": 300, "subProgramPrice": 0, "numberOfPayments": 3,
            "paymentMethod": "installments", "pricingModel": "per_month",
        },
        "schedule": [{"dayOfWeek": 1, "startTime": "16:00", "endTime": "17:00"}],
    })

    for first, last in (("Ela", "Kaya"), ("Tom", "Berg")):
        _create(store, "students", {
            "firstName": first, "lastName": last, "status": "active",
            "parentFirstName": "Parent", "parentLastName": last,
            "parentEmail": f"{first.lower()}.parent@example.com",
            "learningGroupId": group["id"], "mfId": "mf_1", "lcId": "lc_1",
        })

    _create(store, "products", {
        "name": "Abacus", "sku": "ABC-01", "category": "supplies", "price": 15, "stock": 200,
    })
    _create(store, "orders", {
        "orderNumber": "ORD-0001", "status": "pending", "total": 150,
        "mfId": "mf_1", "lcId": "lc_1", "items": [{"sku": "ABC-01", "quantity": 10}],
    })
    _create(store, "accounts", {"name": "North MF", "code": "MF-N", "accountType": "mf"})
    _create(store, "trainings", {"name": "Trainer Onboarding", "trainingType": "initial"})
    _create(store, "applications", {
        "applicantName": "Jane Doe", "email": "jane@example.com", "applicationType": "lc",
    })

    counts = {repo.entity_type: len(repo.list()) for repo in store}
    logger.info("Demo data seeded: %s", counts)
    return counts
